"""Context assembly at query time.

Usage:
    from docsplit.assembly import create_assembly_strategy

    strategy = create_assembly_strategy(hit.mime_type, config)
    chunks = await strategy.select_chunks(library, version, hits, store)
    context = strategy.assemble_content(chunks)
"""

from docsplit.assembly.base import AssemblyGroup, ContentAssemblyStrategy, group_hits_by_url
from docsplit.assembly.factory import create_assembly_strategy
from docsplit.assembly.hierarchical import HierarchicalAssemblyStrategy, common_path_prefix
from docsplit.assembly.prose import ProseAssemblyStrategy

__all__ = [
    "AssemblyGroup",
    "ContentAssemblyStrategy",
    "HierarchicalAssemblyStrategy",
    "ProseAssemblyStrategy",
    "common_path_prefix",
    "create_assembly_strategy",
    "group_hits_by_url",
]
