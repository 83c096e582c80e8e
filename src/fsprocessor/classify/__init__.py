"""Role classification driven by versioned call-site signatures."""

from fsprocessor.classify.classifier import classify, roles_for
from fsprocessor.classify.models import Classification, Role, RoleTag
from fsprocessor.classify.signatures import (
    DEFAULT_SIGNATURES,
    READ_FILE,
    READ_STREAM,
    WRITE_FILE,
    WRITE_STREAM,
    FramePattern,
    KindSignatures,
    RoleSignature,
    SignatureTable,
    StructuralPattern,
    get_signature_table,
    load_signature_table,
)

__all__ = [
    "Classification",
    "DEFAULT_SIGNATURES",
    "FramePattern",
    "KindSignatures",
    "READ_FILE",
    "READ_STREAM",
    "Role",
    "RoleSignature",
    "RoleTag",
    "SignatureTable",
    "StructuralPattern",
    "WRITE_FILE",
    "WRITE_STREAM",
    "classify",
    "get_signature_table",
    "load_signature_table",
    "roles_for",
]
