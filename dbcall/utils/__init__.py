from dbcall.utils import logging

__all__ = ("logging",)
