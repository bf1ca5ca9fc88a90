"""Descriptors, signatures, wire types and typed procedure parameters."""

from dbcall.core.descriptors import Descriptor, QueryDescriptor, StoredProcedureDescriptor, detect_operation_type
from dbcall.core.parameters import BINDERS, Parameter
from dbcall.core.signature import ProcedureSignature, parse_signature
from dbcall.core.types import BindKind, ParameterMode, WireType, bind_kind_for, native_class_for

__all__ = (
    "BINDERS",
    "BindKind",
    "Descriptor",
    "Parameter",
    "ParameterMode",
    "ProcedureSignature",
    "QueryDescriptor",
    "StoredProcedureDescriptor",
    "WireType",
    "bind_kind_for",
    "detect_operation_type",
    "native_class_for",
    "parse_signature",
)
