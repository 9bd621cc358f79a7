from casper.casper_errors import (
    CasperError, LoadError, DuplicateTagError, UnknownParentTag, UnknownTagError, RegistryFrozenError,
    DuplicateConstructorError, DuplicateBindingError, ModuleFormatError,
    NoMatch, DispatchError, NoSuchFunction, NoMatchingOverload, AmbiguousDispatch
)
from casper.casper_tags import Tag, TagRegistry
from casper.casper_datatypes import (
    Value, IntValue, FloatValue, StringValue, ListValue, DictValue, ConstructedValue, ClosureValue,
    from_python
)
from casper.casper_patterns import (
    Pattern, Wildcard, Binding, TagMatch, NamedTagMatch, ContainerMatch, ArityMatch
)
from casper.casper_functions import FunctionDefinition, FunctionGroup, FunctionTable
from casper.casper_matcher import Matcher, MatchResult
from casper.casper_dispatch import Resolver, Resolution
from casper.casper_printer import Printer
from casper.casper_loader import ModuleLoader
from casper.casper_runtime import Runtime, ExecutionResult
