"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    """Service categories that produce clash zones."""

    DUCTS = "Ducts"
    PIPES = "Pipes"
    CABLE_TRAYS = "Cable Trays"
    DUCT_ACCESSORIES = "Duct Accessories"

    @classmethod
    def parse(cls, value: str) -> Category:
        """Parse a category label leniently (case and separator insensitive)."""

        wanted = " ".join(value.replace("_", " ").replace("-", " ").split()).casefold()
        for member in cls:
            if member.value.casefold() == wanted:
                return member
        raise ValueError(f"Unknown category: {value!r}")


class SleeveKind(StrEnum):
    INDIVIDUAL = "individual"
    CLUSTER = "cluster"
    COMBINED = "combined"


class ConstituentKind(StrEnum):
    """Members of a combined sleeve are either single zones or whole clusters."""

    INDIVIDUAL = "individual"
    CLUSTER = "cluster"


class PrefixRule(StrEnum):
    """The rule in the prefix priority chain that produced a prefix."""

    MULTI_LINK = "multi_link"
    CHILLED_WATER_EXCEPTION = "chilled_water_exception"
    SAME_SYSTEM_TYPE = "same_system_type"
    COMBINED_DEFAULT = "combined_default"
    FALLBACK = "fallback"


class MarkingMode(StrEnum):
    FULL = "full"
    PREFIX_ONLY = "prefix_only"
    NUMBER_ONLY = "number_only"


class TransferKind(StrEnum):
    CONDUIT_TO_OPENING = "conduit_to_opening"
    HOST_TO_OPENING = "host_to_opening"
    LEVEL_TO_OPENING = "level_to_opening"


class AggregationPolicy(StrEnum):
    """How constituent snapshot values merge into one combined value."""

    FIRST_NON_EMPTY = "first_non_empty"
    CONCATENATE = "concatenate"
    PREFER_HOST = "prefer_host"


class AttributeNamespace(StrEnum):
    CONDUIT = "conduit"
    HOST = "host"


class AttributeKind(StrEnum):
    """Storage type of a host-document attribute."""

    STRING = "string"
    NUMBER = "number"
    ID = "id"
