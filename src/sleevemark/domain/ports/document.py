"""Port for the host document that owns sleeves and their attributes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sleevemark.domain.model import AttributeValue, ElementId, Sleeve, SleeveScope


class AttributeWriteError(RuntimeError):
    """Raised when the host rejects a single attribute write."""

    def __init__(self, element_id: ElementId, name: str, reason: str) -> None:
        super().__init__(f"Cannot write {name!r} on element {element_id}: {reason}")
        self.element_id = element_id
        self.name = name
        self.reason = reason


class TransactionError(RuntimeError):
    """Raised when the surrounding transaction cannot be started or committed."""

    def __init__(self, message: str, *, status: str | None = None) -> None:
        super().__init__(message)
        self.status = status


@runtime_checkable
class HostDocument(Protocol):
    """Element and attribute access. Writes only happen inside an open unit of work."""

    def add_sleeve(self, sleeve: Sleeve) -> None: ...

    def get_sleeve(self, element_id: ElementId) -> Sleeve | None: ...

    def sleeves(self, scope: SleeveScope | None = None) -> list[Sleeve]: ...

    def has_attribute(self, element_id: ElementId, name: str) -> bool: ...

    def read_attribute(self, element_id: ElementId, name: str) -> AttributeValue | None: ...

    def write_attribute(self, element_id: ElementId, name: str, value: AttributeValue) -> None:
        """Write a typed value, raising ``AttributeWriteError`` when the host refuses."""
        ...

    def clear_attribute(self, element_id: ElementId, name: str) -> None: ...
