import os
from visualrag.storage.memory_store import InMemoryDocumentStore
from visualrag.storage.file_store import LocalDocumentStore
from visualrag.models.chunk import ChunkMetadata, ChunkType, DocumentChunk
from visualrag.models.document import DocumentHierarchy, DocumentMetadata, DocumentStructure, DocumentType

def make_document(doc_id: str) -> DocumentStructure:
    chunk = DocumentChunk(
        id=f"{doc_id}_c0",
        content="# Storage test",
        type=ChunkType.heading,
        metadata=ChunkMetadata(page=1, hierarchy=1, keywords=["storage"], embedding=[0.25, 0.5])
    )
    return DocumentStructure(
        id=doc_id,
        filename=f"{doc_id}.md",
        total_pages=1,
        chunks=[chunk],
        hierarchy=[DocumentHierarchy(id=f"hierarchy_{chunk.id}", level=1, title="Storage test", chunk_ids=[chunk.id])],
        metadata=DocumentMetadata(
            title="Storage test",
            document_type=DocumentType.md,
            processing_timestamp="2025-06-01T12:00:00+00:00",
            chunking_strategy="hybrid",
            total_tokens=4
        )
    )

def check_store(store):
    store.save(make_document("doc_a"))
    store.save(make_document("doc_b"))

    loaded = store.load("doc_a")
    assert loaded == make_document("doc_a")
    assert store.load("missing") is None

    records = store.list_documents()
    assert sorted(r.id for r in records) == ["doc_a", "doc_b"]
    record = next(r for r in records if r.id == "doc_a")
    assert record.total_chunks == 1
    assert record.total_tokens == 4
    assert record.title == "Storage test"

    assert [d.id for d in store.load_many(["doc_b", "missing"])] == ["doc_b"]
    assert len(store.load_many()) == 2

    assert store.delete("doc_a") is True
    assert store.delete("doc_a") is False
    assert store.load("doc_a") is None

    store.clear()
    assert store.list_documents() == []

def test_memory_store():
    print("Testing InMemoryDocumentStore...")
    check_store(InMemoryDocumentStore())
    print("InMemoryDocumentStore tests PASSED")

def test_local_store(tmp_path):
    print("Testing LocalDocumentStore...")
    path = str(tmp_path / "documents")
    store = LocalDocumentStore(path)
    assert os.path.isdir(path)
    check_store(store)

    # Documents survive a new store instance on the same directory
    store.save(make_document("doc_c"))
    reopened = LocalDocumentStore(path)
    assert reopened.load("doc_c").chunks[0].metadata.embedding == [0.25, 0.5]
    print("LocalDocumentStore tests PASSED")

def test_local_store_ignores_path_components(tmp_path):
    store = LocalDocumentStore(str(tmp_path))
    store.save(make_document("doc_safe"))
    assert store.load("../doc_safe") is not None
    assert not os.path.exists(tmp_path.parent / "doc_safe.json")
