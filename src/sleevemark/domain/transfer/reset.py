"""Clearing previously transferred parameters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sleevemark.domain.model import TransferResult, normalize_key
from sleevemark.domain.ports import AttributeWriteError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sleevemark.domain.model import ElementId, ParameterTransferConfiguration
    from sleevemark.domain.ports import HostDocument

log = logging.getLogger(__name__)


def reset_transferred_parameters(
    document: HostDocument,
    target_ids: Iterable[ElementId],
    config: ParameterTransferConfiguration,
) -> TransferResult:
    """Clear every enabled mapping's target parameter on the given elements."""

    names = list(
        {
            normalize_key(mapping.target_parameter): mapping.target_parameter
            for mapping in config.enabled_mappings
        }.values()
    )
    targets = tuple(dict.fromkeys(target_ids))
    if not names:
        return TransferResult.failure("No parameter mappings are enabled")
    if not targets:
        return TransferResult.failure("No target elements were given")

    result = TransferResult()
    cleared_elements: set[ElementId] = set()
    for element_id in targets:
        for name in names:
            if not document.has_attribute(element_id, name):
                continue
            result.attempted += 1
            try:
                document.clear_attribute(element_id, name)
            except AttributeWriteError as exc:
                result.failed += 1
                result.errors.append(str(exc))
                continue
            cleared_elements.add(element_id)
    result.transferred = len(cleared_elements)
    result.message = f"Cleared transferred parameters on {result.transferred} elements"
    log.info(
        "Reset transferred parameters: elements=%d, cleared=%d, failed=%d",
        len(targets),
        result.transferred,
        result.failed,
    )
    return result
