from abc import ABC, abstractmethod
from typing import List, Optional
from visualrag.models.document import DocumentRecord, DocumentStructure

class DocumentStore(ABC):
    """
    Collection of processed documents owned by the caller.
    Documents are immutable once saved; removal just drops them from the collection.
    """

    @abstractmethod
    def save(self, document: DocumentStructure) -> None:
        pass

    @abstractmethod
    def load(self, document_id: str) -> Optional[DocumentStructure]:
        pass

    @abstractmethod
    def list_documents(self) -> List[DocumentRecord]:
        """Returns a listing entry for every stored document."""
        pass

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        """Returns False when the document was not in the collection."""
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def load_many(self, document_ids: Optional[List[str]] = None) -> List[DocumentStructure]:
        """Loads the given documents (all when None), skipping unknown ids."""
        if document_ids is None:
            document_ids = [r.id for r in self.list_documents()]
        documents = []
        for d_id in document_ids:
            document = self.load(d_id)
            if document is not None:
                documents.append(document)
        return documents
