import copy
import uuid
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from corpus_admin.models.dataset import Dataset


@pytest.mark.asyncio
async def test_list_requires_auth(client: AsyncClient):
    response = await client.get("/api/v1/datasets")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_empty(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/datasets", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "datasets": [],
        "pagination": {"currentPage": 1, "totalPages": 0, "totalItems": 0, "itemsPerPage": 10},
    }


@pytest.mark.asyncio
async def test_list_second_page(client: AsyncClient, dataset_document, auth_headers, make_dataset):
    """25 stored, page 2 of 10 returns items 11-20"""
    base = datetime(2024, 1, 1)
    for i in range(25):
        await make_dataset(dataset_document(i), created_at=base + timedelta(minutes=i))

    response = await client.get("/api/v1/datasets?page=2&limit=10", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert [d["file_name"] for d in data["datasets"]] == [f"11312/t-{i:05d}" for i in range(10, 20)]
    assert data["pagination"] == {"currentPage": 2, "totalPages": 3, "totalItems": 25, "itemsPerPage": 10}


@pytest.mark.asyncio
async def test_list_returns_normalized_datasets(client: AsyncClient, dataset_document, auth_headers, make_dataset):
    await make_dataset(dataset_document(1))

    response = await client.get("/api/v1/datasets", headers=auth_headers)

    dataset = response.json()["datasets"][0]
    assert dataset["participant_count"] == 2
    assert dataset["participants"] == [
        {"id": "PAR", "age": "74", "sex": "male", "group": "Control", "mmse": "Unknown"}
    ]
    assert dataset["utterances"][1]["start_time"] == 1.5
    assert dataset["utterances"][1]["end_time"] == 3.25
    assert dataset["utterances"][1]["timestamp"] == {"start": 1.5, "end": 3.25}
    assert dataset["utterances"][1]["tier"] == "PAR"
    assert dataset["metadata"] == dataset_document(1)["metadata"]


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["page=0", "limit=0", "page=-1", "page=abc"])
async def test_list_rejects_bad_paging(client: AsyncClient, auth_headers, query):
    response = await client.get(f"/api/v1/datasets?{query}", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_list_caps_oversized_limit(client: AsyncClient, dataset_document, auth_headers, make_dataset):
    await make_dataset(dataset_document(1))

    response = await client.get("/api/v1/datasets?limit=1000", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert len(data["datasets"]) == 1
    assert data["pagination"] == {"currentPage": 1, "totalPages": 1, "totalItems": 1, "itemsPerPage": 100}


@pytest.mark.asyncio
async def test_list_survives_legacy_documents(client: AsyncClient, auth_headers, make_dataset):
    """Old layouts with missing metadata and broken utterances still list"""
    legacy = await make_dataset({
        "file_name": "legacy.cha",
        "metadata": None,
        "utterances": [{"speaker": "PAR", "text": "well", "timestamp": "garbage"}, "broken", 42],
    })

    response = await client.get(f"/api/v1/datasets/{legacy.id}", headers=auth_headers)

    assert response.status_code == 200
    dataset = response.json()["dataset"]
    assert dataset["file_name"] == "legacy.cha"
    assert dataset["participant_count"] == 0
    assert dataset["participants"][0]["id"] == "PAR"
    assert len(dataset["utterances"]) == 1
    assert "timestamp" not in dataset["utterances"][0]


@pytest.mark.asyncio
async def test_get_dataset(client: AsyncClient, dataset_document, auth_headers, make_dataset):
    stored = await make_dataset(dataset_document(3))

    response = await client.get(f"/api/v1/datasets/{stored.id}", headers=auth_headers)

    assert response.status_code == 200
    dataset = response.json()["dataset"]
    assert dataset["id"] == str(stored.id)
    assert dataset["file_name"] == "11312/t-00003"


@pytest.mark.asyncio
async def test_get_dataset_bad_id(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/datasets/not-an-id", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ID"


@pytest.mark.asyncio
async def test_get_dataset_missing(client: AsyncClient, auth_headers):
    response = await client.get(f"/api/v1/datasets/{uuid.uuid4()}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "DATASET_NOT_FOUND"


@pytest.mark.asyncio
async def test_create_nested(client: AsyncClient, dataset_document, auth_headers, db_session):
    document = dataset_document(7)

    response = await client.post("/api/v1/datasets", json=document, headers=auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Dataset created successfully"
    assert data["dataset"]["id"] == data["id"]
    assert data["dataset"]["file_name"] == "11312/t-00007"
    assert data["dataset"]["created_at"] is not None

    stored = (await db_session.execute(select(Dataset).where(Dataset.id == data["id"]))).scalar_one()
    assert stored.file_name == "007-0.cha"
    assert stored.dataset_metadata == document["metadata"]
    assert stored.utterances == document["utterances"]


@pytest.mark.asyncio
async def test_create_flat(client: AsyncClient, auth_headers, db_session):
    """Header fields at top level are stored under metadata"""
    response = await client.post("/api/v1/datasets", json={
        "file_name": "flat.cha",
        "PID": "11312/t-99999",
        "Languages": "eng",
        "ID": ["eng|Pitt|PAR|80;|female|ProbableAD|||"],
        "utterances": [{"speaker": "PAR", "text": "cookie", "timestamp": "100_900"}],
    }, headers=auth_headers)

    assert response.status_code == 201
    dataset = response.json()["dataset"]
    assert dataset["file_name"] == "11312/t-99999"
    assert dataset["participants"][0]["group"] == "ProbableAD"
    assert dataset["metadata"] == {
        "PID": "11312/t-99999",
        "Languages": "eng",
        "ID": ["eng|Pitt|PAR|80;|female|ProbableAD|||"],
    }


@pytest.mark.asyncio
async def test_create_validation_errors(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/datasets", json={
        "file_name": "",
        "Languages": "xx",
        "metadata": {"Begin": "1:00"},
        "utterances": [{"speaker": "PAR"}],
    }, headers=auth_headers)

    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["error"]["details"]["errors"]}
    assert fields == {"file_name", "Languages", "metadata.Begin", "utterances[0].text"}


@pytest.mark.asyncio
async def test_update_only_provided_fields(client: AsyncClient, dataset_document, auth_headers, make_dataset):
    stored = await make_dataset(dataset_document(4), created_at=datetime(2024, 1, 1))
    original = dataset_document(4)

    response = await client.put(
        f"/api/v1/datasets/{stored.id}",
        json={"Media": "004-0, video"},
        headers=auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Dataset updated successfully"
    expected_metadata = copy.deepcopy(original["metadata"])
    expected_metadata["Media"] = "004-0, video"
    assert data["dataset"]["metadata"] == expected_metadata
    assert len(data["dataset"]["utterances"]) == len(original["utterances"])
    assert data["dataset"]["updated_at"] > data["dataset"]["created_at"]


@pytest.mark.asyncio
async def test_update_replaces_utterances(client: AsyncClient, dataset_document, auth_headers, make_dataset):
    stored = await make_dataset(dataset_document(5))

    response = await client.put(
        f"/api/v1/datasets/{stored.id}",
        json={"utterances": [{"speaker": "PAR", "text": "only one now"}]},
        headers=auth_headers
    )

    assert response.status_code == 200
    utterances = response.json()["dataset"]["utterances"]
    assert [u["text"] for u in utterances] == ["only one now"]
    assert response.json()["dataset"]["file_name"] == "11312/t-00005"


@pytest.mark.asyncio
async def test_update_invalid_field(client: AsyncClient, dataset_document, auth_headers, make_dataset):
    stored = await make_dataset(dataset_document(6))

    response = await client.put(
        f"/api/v1/datasets/{stored.id}",
        json={"End": "later"},
        headers=auth_headers
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_missing(client: AsyncClient, auth_headers):
    response = await client.put(
        f"/api/v1/datasets/{uuid.uuid4()}",
        json={"file_name": "x.cha"},
        headers=auth_headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_dataset(client: AsyncClient, dataset_document, auth_headers, make_dataset):
    stored = await make_dataset(dataset_document(8))

    response = await client.delete(f"/api/v1/datasets/{stored.id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"message": "Dataset deleted successfully"}

    again = await client.get(f"/api/v1/datasets/{stored.id}", headers=auth_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_delete_bad_id(client: AsyncClient, auth_headers):
    response = await client.delete("/api/v1/datasets/12345", headers=auth_headers)

    assert response.status_code == 400
