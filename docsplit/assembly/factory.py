"""Assembly strategy selection by MIME type."""

from __future__ import annotations

from docsplit.assembly.base import ContentAssemblyStrategy
from docsplit.assembly.hierarchical import HierarchicalAssemblyStrategy
from docsplit.assembly.prose import ProseAssemblyStrategy
from docsplit.config import DocsplitConfig


def create_assembly_strategy(
    mime_type: str | None,
    config: DocsplitConfig | None = None,
) -> ContentAssemblyStrategy:
    """Create the assembly strategy for a MIME type.

    Source code and JSON get the hierarchical strategy; markdown, HTML,
    plain text, unknown and missing types get the prose strategy.

    Args:
        mime_type: MIME type of the document (optional)
        config: Configuration providing the assembly limits

    Returns:
        The strategy instance
    """
    assembly = (config or DocsplitConfig.default()).assembly
    if not mime_type:
        return ProseAssemblyStrategy(assembly)

    strategies: list[ContentAssemblyStrategy] = [
        HierarchicalAssemblyStrategy(assembly),
        ProseAssemblyStrategy(assembly),
    ]
    for strategy in strategies:
        if strategy.can_handle(mime_type):
            return strategy
    return ProseAssemblyStrategy(assembly)
