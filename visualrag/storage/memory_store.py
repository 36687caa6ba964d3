import threading
from typing import Dict, List, Optional
from visualrag.models.document import DocumentRecord, DocumentStructure
from visualrag.storage.base import DocumentStore

class InMemoryDocumentStore(DocumentStore):
    """
    Keeps documents in a dict for the lifetime of the process.
    A lock guards the dict since API requests may save and delete concurrently.
    """

    def __init__(self):
        self._documents: Dict[str, DocumentStructure] = {}
        self._lock = threading.Lock()

    def save(self, document: DocumentStructure) -> None:
        with self._lock:
            self._documents[document.id] = document

    def load(self, document_id: str) -> Optional[DocumentStructure]:
        with self._lock:
            return self._documents.get(document_id)

    def list_documents(self) -> List[DocumentRecord]:
        with self._lock:
            documents = list(self._documents.values())
        return [DocumentRecord.from_structure(d) for d in documents]

    def delete(self, document_id: str) -> bool:
        with self._lock:
            return self._documents.pop(document_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()
