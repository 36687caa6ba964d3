import logging
from typing import List
from fastapi import APIRouter, Depends, Request, HTTPException

from visualrag.storage.base import DocumentStore
from visualrag.models.document import DocumentRecord, DocumentStructure
from visualrag.core.exceptions import DocumentNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)

# Dependency for the store (from app.state)
def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store

@router.get("/documents", response_model=List[DocumentRecord], summary="List all processed documents")
def list_documents(document_store: DocumentStore = Depends(get_document_store)):
    return document_store.list_documents()

@router.get("/documents/{document_id}", response_model=DocumentStructure, summary="Get a processed document with its chunks and hierarchy")
def get_document(document_id: str, document_store: DocumentStore = Depends(get_document_store)):
    document = document_store.load(document_id)
    if document is None:
        error = DocumentNotFoundError(document_id)
        raise HTTPException(status_code=error.status_code, detail=error.to_dict()["error"])
    return document

@router.delete("/documents/{document_id}", summary="Remove a document from the collection")
def delete_document(document_id: str, document_store: DocumentStore = Depends(get_document_store)):
    logger.info(f"Deleting document {document_id}")
    if not document_store.delete(document_id):
        error = DocumentNotFoundError(document_id)
        raise HTTPException(status_code=error.status_code, detail=error.to_dict()["error"])
    return {"document_id": document_id, "success": True}

@router.delete("/documents", summary="Remove every document from the collection")
def clear_documents(document_store: DocumentStore = Depends(get_document_store)):
    document_store.clear()
    logger.info("Document collection cleared")
    return {"success": True}
