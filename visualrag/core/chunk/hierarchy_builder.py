from typing import List
from visualrag.models.chunk import ChunkType, DocumentChunk
from visualrag.models.document import DocumentHierarchy
from visualrag.core.chunk.text_analysis import clean_heading

class HierarchyBuilder:
    """
    Reconstructs the heading tree of a document from its ordered chunks.
    Uses a stack of open sections keyed by heading level.
    """

    def build(self, chunks: List[DocumentChunk]) -> List[DocumentHierarchy]:
        """
        Each heading subsumes the chunks after it until a heading of equal or
        shallower level appears. Chunks before the first heading belong to no node.
        """
        roots: List[DocumentHierarchy] = []
        stack: List[DocumentHierarchy] = []

        for chunk in chunks:
            if chunk.type == ChunkType.heading and chunk.metadata.hierarchy:
                level = chunk.metadata.hierarchy

                # Close sections at the same depth or deeper (handles H1 -> H3 -> H2)
                while stack and stack[-1].level >= level:
                    stack.pop()

                node = DocumentHierarchy(
                    id=f"hierarchy_{chunk.id}",
                    level=level,
                    title=clean_heading(chunk.content),
                    chunk_ids=[chunk.id]
                )

                if stack:
                    stack[-1].children.append(node)
                else:
                    roots.append(node)
                stack.append(node)
            elif stack:
                stack[-1].chunk_ids.append(chunk.id)

        return roots
