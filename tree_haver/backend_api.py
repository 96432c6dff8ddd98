"""Backend conformance checking.

Reflects over a candidate backend module (never instantiating anything) and
reports whether it satisfies the backend contract::

    available()                          module function, required
    capabilities()                       module function, optional
    Language.from_library(path, ...)     native backends
    Language.from_grammar(grammar, ...)  grammar backends
    Parser.language / Parser.parse       required
    Parser.parse_string                  optional (incremental parsing)
    Tree.root_node / Tree.edit           optional class, edit optional
    Node.*                               optional class, see NODE_* below

Purely diagnostic: nothing at runtime is gated on these reports.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from .errors import TreeHaverError

LANGUAGE_FACTORY_METHODS: tuple[str, ...] = ("from_library", "from_grammar")

PARSER_INSTANCE_METHODS: tuple[str, ...] = ("language", "parse")
PARSER_OPTIONAL_METHODS: tuple[str, ...] = ("parse_string",)

TREE_INSTANCE_METHODS: tuple[str, ...] = ("root_node",)
TREE_OPTIONAL_METHODS: tuple[str, ...] = ("edit",)

NODE_INSTANCE_METHODS: tuple[str, ...] = (
    "type",
    "child_count",
    "child",
    "start_byte",
    "end_byte",
)

NODE_OPTIONAL_METHODS: tuple[str, ...] = (
    "parent",
    "next_sibling",
    "prev_sibling",
    "is_named",
    "has_error",
    "is_missing",
    "text",
    "child_by_field_name",
    "start_point",
    "end_point",
)

# canonical name → alternative spellings used by some backends
NODE_ALIASES: dict[str, tuple[str, ...]] = {
    "type": ("kind",),
    "is_named": ("named",),
    "has_error": ("has_errors",),
    "is_missing": ("missing",),
    "next_sibling": ("next_named_sibling",),
    "prev_sibling": (
        "previous_sibling",
        "prev_named_sibling",
        "previous_named_sibling",
    ),
    "start_point": ("start_position",),
    "end_point": ("end_position",),
}


class ValidationReport(BaseModel):
    valid: bool = True
    errors: list[str] = []
    warnings: list[str] = []
    capabilities: dict[str, Any] = {}

    def fail(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False


class NodeValidationReport(BaseModel):
    valid: bool = True
    errors: list[str] = []
    warnings: list[str] = []
    supported_methods: list[str] = []
    unsupported_methods: list[str] = []


# ── Reflection helpers ───────────────────────────────────────────


def class_has(klass: type, name: str) -> bool:
    """True if *klass* defines *name* as a method, property, slot or annotated field."""
    if hasattr(klass, name):
        return True
    return any(name in getattr(k, "__annotations__", {}) for k in getattr(klass, "__mro__", ()))


def alias_names(method: str) -> tuple[str, ...]:
    """The canonical name followed by its aliases."""
    return (method, *NODE_ALIASES.get(method, ()))


def has_method_or_alias(klass: type, method: str) -> bool:
    return any(class_has(klass, name) for name in alias_names(method))


def resolve_alias(obj: Any, method: str) -> str | None:
    """First of *method* and its aliases that *obj* actually exposes."""
    return next((name for name in alias_names(method) if hasattr(obj, name)), None)


# ── Module validation ────────────────────────────────────────────


def _module_name(module: Any) -> str:
    return getattr(module, "__name__", type(module).__name__)


def _validate_module_functions(module: Any, report: ValidationReport) -> None:
    if not callable(getattr(module, "available", None)):
        report.fail("Missing module function: available")
    if not callable(getattr(module, "capabilities", None)):
        report.warnings.append("Missing module function: capabilities")


def _validate_language(klass: type, report: ValidationReport) -> None:
    factories = [m for m in LANGUAGE_FACTORY_METHODS if callable(getattr(klass, m, None))]
    if not factories:
        report.fail(
            "Language missing factory class method: one of "
            + ", ".join(LANGUAGE_FACTORY_METHODS)
        )
    report.capabilities["language"] = {"factories": factories}


def _validate_parser(klass: type, report: ValidationReport) -> None:
    for method in PARSER_INSTANCE_METHODS:
        if not class_has(klass, method):
            report.fail(f"Parser missing instance method: {method}")
    optional = [m for m in PARSER_OPTIONAL_METHODS if class_has(klass, m)]
    for method in PARSER_OPTIONAL_METHODS:
        if method not in optional:
            report.warnings.append(f"Parser missing optional method: {method}")
    report.capabilities["parser"] = {"optional": optional}


def _validate_tree(klass: type, report: ValidationReport) -> None:
    for method in TREE_INSTANCE_METHODS:
        if not class_has(klass, method):
            report.fail(f"Tree missing instance method: {method}")
    for method in TREE_OPTIONAL_METHODS:
        if not class_has(klass, method):
            report.warnings.append(f"Tree missing optional method: {method}")


def _validate_node_class(klass: type, report: ValidationReport, strict: bool) -> None:
    for method in NODE_INSTANCE_METHODS:
        if not has_method_or_alias(klass, method):
            report.fail(f"Node missing required method: {method}")
    for method in NODE_OPTIONAL_METHODS:
        if has_method_or_alias(klass, method):
            continue
        message = f"Node missing optional method: {method}"
        if strict:
            report.fail(message)
        else:
            report.warnings.append(message)
    report.capabilities["node"] = {
        "required": [m for m in NODE_INSTANCE_METHODS if has_method_or_alias(klass, m)],
        "optional": [m for m in NODE_OPTIONAL_METHODS if has_method_or_alias(klass, m)],
    }


def validate(backend_module: Any, strict: bool = False) -> ValidationReport:
    """Check *backend_module* against the backend contract.

    Args:
        backend_module: A module (or any namespace object) exposing the
            contract attributes.
        strict: Treat missing optional node methods, and any remaining
            warning, as failures.

    Returns:
        A ValidationReport; ``valid`` is False when any error was found.
    """
    report = ValidationReport()
    _validate_module_functions(backend_module, report)

    language = getattr(backend_module, "Language", None)
    if language is None:
        report.fail("Missing Language class")
    else:
        _validate_language(language, report)

    parser = getattr(backend_module, "Parser", None)
    if parser is None:
        report.fail("Missing Parser class")
    else:
        _validate_parser(parser, report)

    tree = getattr(backend_module, "Tree", None)
    if tree is None:
        report.warnings.append("No Tree class (backend returns raw trees)")
    else:
        _validate_tree(tree, report)

    node = getattr(backend_module, "Node", None)
    if node is None:
        report.warnings.append("No Node class (backend returns raw nodes, Node will wrap)")
    else:
        _validate_node_class(node, report, strict)

    if strict and report.warnings:
        report.valid = False
    return report


def validate_or_raise(backend_module: Any, strict: bool = False) -> ValidationReport:
    report = validate(backend_module, strict=strict)
    if not report.valid:
        raise TreeHaverError(
            f"Backend {_module_name(backend_module)} API validation failed:\n"
            f"  Errors: {', '.join(report.errors)}\n"
            f"  Warnings: {', '.join(report.warnings)}"
        )
    return report


def validate_node_instance(node: Any) -> NodeValidationReport:
    """Check which unified node methods a live native node supports."""
    report = NodeValidationReport()
    for method in NODE_INSTANCE_METHODS:
        if resolve_alias(node, method):
            report.supported_methods.append(method)
        else:
            report.errors.append(f"Missing required method: {method}")
            report.valid = False
    for method in NODE_OPTIONAL_METHODS:
        if resolve_alias(node, method):
            report.supported_methods.append(method)
        else:
            report.unsupported_methods.append(method)
            report.warnings.append(f"Missing optional method: {method}")
    return report
