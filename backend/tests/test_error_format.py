from fastapi.testclient import TestClient

from portfolio_api.main import app

client = TestClient(app)


def test_http_error_shape():
    res = client.get("/api/v1/does-not-exist")
    assert res.status_code == 404
    body = res.json()
    assert set(body.keys()) == {"detail", "code"}
    assert body["detail"] == "Not Found"


def test_request_validation_error_shape():
    res = client.get("/api/v1/admin/projects/not-a-uuid")
    assert res.status_code == 422
    body = res.json()
    assert body["code"] == "validation_error"
    assert isinstance(body["detail"], list)
