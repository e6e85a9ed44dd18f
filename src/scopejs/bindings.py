"""Runtime scope nodes and their binding tables."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional

from .errors import JSTypeError, TDZError
from .scope_tree import ScopeKind
from .values import UNDEFINED, JSValue


class DeclKind(str, Enum):
    VAR = "var"
    LET = "let"
    CONST = "const"
    FUNCTION = "function"
    PARAM = "param"


class BindingState(str, Enum):
    UNINITIALIZED = "Uninitialized"
    INITIALIZED = "Initialized"


@dataclass
class BindingRecord:
    """One identifier binding in a scope node."""

    name: str
    kind: DeclKind
    state: BindingState = BindingState.INITIALIZED
    value: JSValue = UNDEFINED

    @property
    def is_lexical(self) -> bool:
        return self.kind in (DeclKind.LET, DeclKind.CONST)

    @property
    def initialized(self) -> bool:
        return self.state is BindingState.INITIALIZED

    def read(self) -> JSValue:
        if not self.initialized:
            raise TDZError(self.name)
        return self.value

    def initialize(self, value: JSValue = UNDEFINED) -> None:
        """Run the declaration: the binding leaves its dead zone."""
        self.value = value
        self.state = BindingState.INITIALIZED

    def assign(self, value: JSValue) -> None:
        if not self.initialized:
            raise TDZError(self.name)
        if self.kind is DeclKind.CONST:
            raise JSTypeError("Assignment to constant variable.")
        self.value = value


class ScopeNode:
    """A live scope: one per function call, block entry or program.

    The parent link is used only to walk the scope chain. Closures hold
    ScopeNodes by reference, so every holder sees the same bindings.
    """

    def __init__(self, kind: ScopeKind, parent: Optional["ScopeNode"] = None, label: str = ""):
        self.kind = kind
        self.parent = parent
        self.label = label or kind.value
        self.bindings: Dict[str, BindingRecord] = {}

    def declare(self, name: str, kind: DeclKind, value: JSValue = UNDEFINED) -> BindingRecord:
        """Create (or replace) an initialized binding."""
        record = BindingRecord(name, kind, BindingState.INITIALIZED, value)
        self.bindings[name] = record
        return record

    def declare_uninitialized(self, name: str, kind: DeclKind) -> BindingRecord:
        record = BindingRecord(name, kind, BindingState.UNINITIALIZED)
        self.bindings[name] = record
        return record

    def lookup_own(self, name: str) -> Optional[BindingRecord]:
        return self.bindings.get(name)

    def resolve(self, name: str) -> Optional[BindingRecord]:
        """Walk the scope chain from this node outwards."""
        for node in self.chain():
            record = node.bindings.get(name)
            if record is not None:
                return record
        return None

    def chain(self) -> Iterator["ScopeNode"]:
        """Yield this node and its lexical ancestors, innermost first."""
        node: Optional[ScopeNode] = self
        while node is not None:
            yield node
            node = node.parent

    def snapshot(self) -> Dict[str, JSValue]:
        """Values of the initialized bindings held directly in this node."""
        return {
            name: record.value
            for name, record in self.bindings.items()
            if record.initialized
        }

    def __repr__(self) -> str:
        return f"<ScopeNode {self.label} {sorted(self.bindings)}>"
