import os
import logging
from typing import List, Optional
from visualrag.models.document import DocumentRecord, DocumentStructure
from visualrag.storage.base import DocumentStore

logger = logging.getLogger(__name__)

class LocalDocumentStore(DocumentStore):
    """
    Implements DocumentStore using the local disk.
    - One JSON file per processed document, named after its id.
    """

    def __init__(self, documents_path: str = "./data/documents"):
        self.documents_path = documents_path
        os.makedirs(self.documents_path, exist_ok=True)

    def _path(self, document_id: str) -> str:
        # Ids are generated internally, but never let one escape the directory
        safe_id = os.path.basename(document_id)
        return os.path.join(self.documents_path, f"{safe_id}.json")

    def save(self, document: DocumentStructure) -> None:
        path = self._path(document.id)
        with open(path, "w", encoding="utf-8") as f:
            f.write(document.model_dump_json())

    def load(self, document_id: str) -> Optional[DocumentStructure]:
        path = self._path(document_id)
        if not os.path.exists(path):
            return None

        with open(path, "r", encoding="utf-8") as f:
            return DocumentStructure.model_validate_json(f.read())

    def list_documents(self) -> List[DocumentRecord]:
        records = []
        for name in sorted(os.listdir(self.documents_path)):
            if not name.endswith(".json"):
                continue
            document = self.load(name[:-len(".json")])
            if document is not None:
                records.append(DocumentRecord.from_structure(document))
        return records

    def delete(self, document_id: str) -> bool:
        path = self._path(document_id)
        if not os.path.exists(path):
            return False
        os.remove(path)
        logger.info(f"Deleted stored document {document_id}")
        return True

    def clear(self) -> None:
        for name in os.listdir(self.documents_path):
            if name.endswith(".json"):
                os.remove(os.path.join(self.documents_path, name))
