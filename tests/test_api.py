"""HTTP tests for workspace, file and retrieval endpoints."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from filerag.core.config import get_settings
from filerag.core.errors import EmbeddingProviderError

TEXT_1000 = "".join(chr(ord("a") + i % 26) for i in range(1000))


@pytest.fixture
def small_chunks(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "chunk_size", 300)
    monkeypatch.setattr(settings, "chunk_overlap", 50)


async def _create_workspace(client: AsyncClient, name: str = "Team") -> dict:
    resp = await client.post("/v1/workspaces", json={"name": name})
    assert resp.status_code == 201
    return resp.json()


async def _upload(client: AsyncClient, workspace_id: str, filename: str, content: bytes,
                  content_type: str = "text/plain"):
    return await client.post(
        f"/v1/workspaces/{workspace_id}/files",
        files={"file": (filename, content, content_type)},
    )


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_create_and_get_workspace(client: AsyncClient):
    resp = await client.post(
        "/v1/workspaces", json={"name": "Local", "embeddings_provider": "local"}
    )
    assert resp.status_code == 201
    ws = resp.json()
    assert ws["embeddings_provider"] == "local"

    resp = await client.get(f"/v1/workspaces/{ws['id']}")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Local"

    resp = await client.get("/v1/workspaces")
    assert [w["id"] for w in resp.json()] == [ws["id"]]


@pytest.mark.asyncio
async def test_default_provider_from_settings(client: AsyncClient):
    ws = await _create_workspace(client)
    assert ws["embeddings_provider"] == get_settings().default_embeddings_provider


@pytest.mark.asyncio
async def test_unknown_workspace_404(client: AsyncClient):
    resp = await client.get("/v1/workspaces/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_upload_ingests_file(client: AsyncClient, embedder, small_chunks):
    ws = await _create_workspace(client)

    resp = await _upload(client, ws["id"], "alphabet.txt", TEXT_1000.encode())

    assert resp.status_code == 201
    file = resp.json()
    assert file["status"] == "ready"
    assert file["file_type"] == "txt"
    assert file["size"] == 1000
    assert file["chunk_count"] == 4
    assert file["embedding_model"] == embedder.model_name

    resp = await client.get(f"/v1/files/{file['id']}/items")
    assert resp.status_code == 200
    items = resp.json()
    assert [i["chunk_index"] for i in items] == [0, 1, 2, 3]
    assert [i["char_count"] for i in items] == [300, 300, 300, 250]
    assert all(i["workspace_id"] == ws["id"] for i in items)


@pytest.mark.asyncio
async def test_reupload_content_replaces_chunks(client: AsyncClient, embedder, small_chunks):
    ws = await _create_workspace(client)
    file = (await _upload(client, ws["id"], "alphabet.txt", TEXT_1000.encode())).json()
    old_ids = {i["id"] for i in (await client.get(f"/v1/files/{file['id']}/items")).json()}

    resp = await client.put(
        f"/v1/files/{file['id']}/content",
        files={"file": ("alphabet.txt", TEXT_1000.encode(), "text/plain")},
    )
    assert resp.status_code == 200
    assert resp.json()["chunk_count"] == 4

    items = (await client.get(f"/v1/files/{file['id']}/items")).json()
    assert len(items) == 4
    assert old_ids.isdisjoint({i["id"] for i in items})


@pytest.mark.asyncio
async def test_upload_unsupported_type(client: AsyncClient, embedder):
    ws = await _create_workspace(client)

    resp = await _upload(client, ws["id"], "setup.exe", b"MZ\x90\x00", "application/octet-stream")

    assert resp.status_code == 415
    assert resp.json()["detail"]["code"] == "unsupported_format"
    resp = await client.get(f"/v1/workspaces/{ws['id']}/files")
    assert resp.json() == []


@pytest.mark.asyncio
async def test_upload_corrupt_file(client: AsyncClient, embedder):
    ws = await _create_workspace(client)

    resp = await _upload(client, ws["id"], "broken.json", b'{"unterminated": ', "application/json")

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "corrupt_file"

    files = (await client.get(f"/v1/workspaces/{ws['id']}/files")).json()
    assert len(files) == 1
    assert files[0]["status"] == "error"
    assert files[0]["chunk_count"] == 0


@pytest.mark.asyncio
async def test_upload_embedding_failure(client: AsyncClient, embedder):
    embedder.embed = AsyncMock(side_effect=EmbeddingProviderError("rate limited"))
    ws = await _create_workspace(client)

    resp = await _upload(client, ws["id"], "notes.txt", b"Some notes")

    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["code"] == "embedding_provider_error"
    assert detail["retryable"] is True


@pytest.mark.asyncio
async def test_upload_too_large(client: AsyncClient, embedder, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_file_size", 10)
    ws = await _create_workspace(client)

    resp = await _upload(client, ws["id"], "notes.txt", b"x" * 11)

    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_and_delete_file(client: AsyncClient, embedder):
    ws = await _create_workspace(client)
    file = (await _upload(client, ws["id"], "notes.md", b"# Notes\n\nRetrieval works.")).json()

    resp = await client.patch(f"/v1/files/{file['id']}", json={"description": "team notes"})
    assert resp.status_code == 200
    assert resp.json()["description"] == "team notes"
    assert resp.json()["name"] == "notes.md"

    resp = await client.delete(f"/v1/files/{file['id']}")
    assert resp.status_code == 204

    assert (await client.get(f"/v1/files/{file['id']}")).status_code == 404
    resp = await client.post(f"/v1/workspaces/{ws['id']}/retrieve", json={"query": "Retrieval"})
    assert resp.json() == {"results": []}


@pytest.mark.asyncio
async def test_retrieve_endpoint_is_workspace_scoped(client: AsyncClient, embedder):
    mine = await _create_workspace(client, "Mine")
    theirs = await _create_workspace(client, "Theirs")
    await _upload(client, mine["id"], "mine.txt", b"Quarterly planning notes")
    await _upload(client, theirs["id"], "theirs.txt", b"Quarterly planning notes")

    resp = await client.post(
        f"/v1/workspaces/{mine['id']}/retrieve",
        json={"query": "Quarterly planning notes", "k": 5},
    )

    assert resp.status_code == 200
    results = resp.json()["results"]
    assert len(results) == 1
    assert results[0]["content"] == "Quarterly planning notes"
    assert results[0]["distance"] == pytest.approx(0.0, abs=1e-6)

    files = (await client.get(f"/v1/workspaces/{mine['id']}/files")).json()
    assert results[0]["file_id"] == files[0]["id"]


@pytest.mark.asyncio
async def test_retrieve_validates_request(client: AsyncClient, embedder):
    ws = await _create_workspace(client)
    resp = await client.post(f"/v1/workspaces/{ws['id']}/retrieve", json={"query": "", "k": 0})
    assert resp.status_code == 422
