from dbcall.adapters.dbapi import DBAPIDriver, OutParameter

__all__ = ("DBAPIDriver", "OutParameter")
