"""
Exception types raised by the casperlang dispatch core and its loader.

Load-time errors abort loading a module. Dispatch-time errors propagate to
the host, which decides whether to halt or report them.
"""
from typing import Any, Optional, Sequence, Tuple


class CasperError(Exception):
    """Base class for every error raised by casperlang."""
    pass


# =================================================================
# Load-time errors
# =================================================================

class LoadError(CasperError):
    """A module (tags or definitions) could not be loaded."""
    pass


class DuplicateTagError(LoadError):
    def __init__(self, name: str):
        super().__init__(f"tag '{name}' is already defined")
        self.name = name


class UnknownParentTag(LoadError):
    def __init__(self, name: str, parent_name: str):
        super().__init__(f"tag '{name}' names unknown parent '{parent_name}'")
        self.name = name
        self.parent_name = parent_name


class UnknownTagError(LoadError):
    def __init__(self, name: str):
        super().__init__(f"unknown tag '{name}'")
        self.name = name


class RegistryFrozenError(LoadError):
    """Raised when something tries to register after the load phase ended."""
    pass


class DuplicateConstructorError(LoadError):
    def __init__(self, name: str):
        super().__init__(f"constructor '{name}' may only have one definition")
        self.name = name


class DuplicateBindingError(LoadError):
    def __init__(self, definition_name: str, binding: str):
        super().__init__(f"'{binding}' is bound more than once in a definition of '{definition_name}'")
        self.definition_name = definition_name
        self.binding = binding


class ModuleFormatError(LoadError):
    """The module document is not shaped the way the loader expects."""
    pass


# =================================================================
# Matching and dispatch errors
# =================================================================

class NoMatch(CasperError):
    """A pattern did not match a value. Only used to eliminate candidates."""
    pass


class DispatchError(CasperError):
    """Base for errors surfaced to the caller of Resolver.resolve."""
    kind = "DispatchError"

    def __init__(self, function_name: str, args: Sequence[Any], message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.function_name = function_name
        self.args_values = tuple(args)
        self.detail = detail


class NoSuchFunction(DispatchError):
    kind = "NoSuchFunction"

    def __init__(self, function_name: str, args: Sequence[Any], detail: Optional[str] = None):
        self.arity = len(args)
        super().__init__(
            function_name, args,
            f"no function '{function_name}' takes {self.arity} argument(s)",
            detail,
        )


class NoMatchingOverload(DispatchError):
    kind = "NoMatchingOverload"

    def __init__(self, function_name: str, args: Sequence[Any], detail: Optional[str] = None):
        super().__init__(
            function_name, args,
            f"no definition of '{function_name}' matches the given arguments",
            detail,
        )


class AmbiguousDispatch(DispatchError):
    kind = "AmbiguousDispatch"

    def __init__(self, function_name: str, args: Sequence[Any], candidates: Sequence[Tuple[Any, Tuple[int, ...]]], detail: Optional[str] = None):
        self.candidates = tuple(candidates)
        super().__init__(
            function_name, args,
            f"ambiguous call to '{function_name}': {len(self.candidates)} candidates tie",
            detail,
        )
