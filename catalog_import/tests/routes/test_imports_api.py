from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from catalog_import.main import app
from catalog_import.models.schemas import ImportSessionListResponseSchema, ImportSessionResponseSchema

client = TestClient(app)

MOCK_FILE_CONTENT_CSV = b"sku,price,qty,value,category\nABC123,19.99,0,Catalog,Shoes\n"

MOCK_SESSION = ImportSessionResponseSchema(
    session_id="sess_1",
    entity_code="import_csv",
    behavior="append",
    original_filename="stock.csv",
    status="completed",
    record_count=1,
    error_count=0,
    items_created=0,
    items_updated=1,
    created_at=datetime(2024, 5, 1, 12, 0),
    updated_at=datetime(2024, 5, 1, 12, 1),
)


@pytest.fixture
def mock_task():
    task = MagicMock()
    task.delay.return_value = MagicMock(id="test_task_id")
    return task


@pytest.fixture(autouse=True)
def mock_services(mock_task):
    with patch('catalog_import.routes.imports.local_upload_file', return_value="/data/uploads/x.csv") as mock_upload, \
         patch('catalog_import.routes.imports.local_delete_file') as mock_delete, \
         patch('catalog_import.routes.imports.create_import_session_in_db_sync') as mock_create, \
         patch.dict('catalog_import.routes.imports.CELERY_TASK_MAP', {"import_csv": mock_task}, clear=True):
        mock_create.return_value = MagicMock(status="pending")
        yield {"upload": mock_upload, "delete": mock_delete, "create": mock_create}


def post_csv(filename="stock.csv", content=MOCK_FILE_CONTENT_CSV, entity_code="import_csv", params=None):
    return client.post(
        f"/api/v1/imports/{entity_code}",
        params=params,
        files={"file": (filename, content, "text/csv")},
    )


def test_read_root():
    response = client.get("/")
    assert response.status_code == 200
    assert "Catalog Stock Import" in response.json()["message"]


def test_upload_queues_import(mock_services, mock_task):
    response = post_csv(params={"behavior": "replace"})

    assert response.status_code == 202
    body = response.json()
    assert body["entity_code"] == "import_csv"
    assert body["behavior"] == "replace"
    assert body["status"] == "pending"
    assert body["task_id"] == "test_task_id"

    mock_services["upload"].assert_called_once()
    storage_key = mock_services["upload"].call_args.args[1]
    assert storage_key == f"imports/import_csv/{body['session_id']}/stock.csv"

    mock_task.delay.assert_called_once_with(
        session_id=body["session_id"],
        file_path="/data/uploads/x.csv",
        behavior="replace",
        original_filename="stock.csv",
    )


def test_behavior_defaults_to_append(mock_task):
    response = post_csv()
    assert response.status_code == 202
    assert mock_task.delay.call_args.kwargs["behavior"] == "append"


def test_unknown_behavior_is_rejected(mock_task):
    response = post_csv(params={"behavior": "merge"})
    assert response.status_code == 422
    mock_task.delay.assert_not_called()


def test_unsupported_entity_code(mock_task):
    response = post_csv(entity_code="brands")
    assert response.status_code == 400
    assert "Unsupported entity code" in response.json()["detail"]
    mock_task.delay.assert_not_called()


def test_non_csv_file_is_rejected(mock_services):
    response = post_csv(filename="stock.xlsx")
    assert response.status_code == 400
    assert response.json()["detail"] == "Only CSV files allowed."
    mock_services["upload"].assert_not_called()


def test_empty_file_is_rejected(mock_services):
    response = post_csv(content=b"")
    assert response.status_code == 400
    assert response.json()["detail"] == "Empty file."


def test_storage_failure_returns_500(mock_services, mock_task):
    mock_services["upload"].side_effect = OSError("disk full")
    response = post_csv()
    assert response.status_code == 500
    mock_task.delay.assert_not_called()


def test_session_creation_failure_removes_stored_file(mock_services, mock_task):
    mock_services["create"].side_effect = HTTPException(status_code=500, detail="Could not create import session.")

    response = post_csv()

    assert response.status_code == 500
    mock_services["delete"].assert_called_once_with("/data/uploads/x.csv")
    mock_task.delay.assert_not_called()


def test_get_import_session():
    with patch('catalog_import.routes.imports.get_import_session_sync', return_value=MOCK_SESSION) as mock_get:
        response = client.get("/api/v1/imports/sess_1")

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["items_updated"] == 1
    mock_get.assert_called_once_with("sess_1")


def test_get_unknown_import_session():
    with patch('catalog_import.routes.imports.get_import_session_sync', return_value=None):
        response = client.get("/api/v1/imports/nope")

    assert response.status_code == 404
    assert response.json()["detail"] == "Import session not found."


def test_list_import_sessions():
    listing = ImportSessionListResponseSchema(items=[MOCK_SESSION], total=1)
    with patch('catalog_import.routes.imports.list_import_sessions_sync', return_value=listing) as mock_list:
        response = client.get("/api/v1/imports", params={"skip": 0, "limit": 10})

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["session_id"] == "sess_1"
    mock_list.assert_called_once_with(0, 10)


def test_list_limit_is_bounded():
    response = client.get("/api/v1/imports", params={"limit": 0})
    assert response.status_code == 422
