# tests/test_storage_api.py

from conftest import ADMIN, count_rows, create_user, login

from backoffice.models.email import EmailLog
from backoffice.models.notification import AdminNotification

INTERNAL_KEY = {"X-Internal-Api-Key": "internal-test-key"}


def make_site(root):
    """Папка сайта: 2 MB полезных файлов и мусор, который не учитывается."""
    (root / "public").mkdir(parents=True)
    (root / "public" / "index.html").write_bytes(b"a" * (1024 * 1024))
    (root / "public" / "app.js").write_bytes(b"b" * (1024 * 1024))
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "big.js").write_bytes(b"c" * (3 * 1024 * 1024))
    (root / "server.log").write_bytes(b"d" * 4096)
    return root


def new_service(client, client_id, folder, limit_mb):
    login(client, *ADMIN)
    created = client.post("/api/services", json={"client_id": client_id, "service_name": "Web Ana", "domain": "ana.example.com"})
    assert created.status_code == 200, created.text
    service_id = created.json()["service"]["id"]
    configured = client.post(f"/api/storage/configure/{service_id}", json={"folder_path": str(folder), "storage_limit_mb": limit_mb})
    assert configured.status_code == 200, configured.text
    return service_id


def test_scan_counts_only_real_files(client, tmp_path):
    ana = create_user(client, "ana")
    service_id = new_service(client, ana, make_site(tmp_path / "site"), 100)

    result = client.post(f"/api/storage/scan/{service_id}").json()["result"]
    assert result["used_mb"] == 2.0
    assert result["file_count"] == 2
    assert result["excluded_count"] == 2
    assert result["percentage"] == 2.0
    assert result["status"] == "ok"
    assert result["needs_alert"] is False

    service = client.get("/api/services").json()["services"][0]
    assert service["storage_used_mb"] == 2.0
    assert service["last_scan_result"]["excluded_count"] == 2


def test_alert_is_sent_once_per_cooldown(client, tmp_path):
    ana = create_user(client, "ana")
    service_id = new_service(client, ana, make_site(tmp_path / "site"), 2.1)

    first = client.post(f"/api/storage/scan/{service_id}").json()["result"]
    assert first["status"] == "critical"
    assert first["needs_alert"] is True
    assert first["alert_sent"] is True

    second = client.post(f"/api/storage/scan/{service_id}").json()["result"]
    assert second["needs_alert"] is True
    assert second["alert_sent"] is False

    # SMTP не настроен: попытка записана в журнал, но скан не падает
    assert count_rows(client, EmailLog, EmailLog.template_code == "storage-critical") == 1
    assert count_rows(client, AdminNotification, AdminNotification.type == "storage_critical", AdminNotification.user_id == ana) == 1
    assert count_rows(client, AdminNotification, AdminNotification.type == "storage_critical", AdminNotification.user_id.is_(None)) == 1


def test_configure_validation(client, tmp_path):
    ana = create_user(client, "ana")
    service_id = new_service(client, ana, tmp_path, 100)

    bad_limit = client.post(f"/api/storage/configure/{service_id}", json={"storage_limit_mb": 0})
    assert bad_limit.status_code == 400
    assert bad_limit.json()["error"] == "bad_limit"

    bad_threshold = client.post(f"/api/storage/configure/{service_id}", json={"alert_threshold": 150})
    assert bad_threshold.json()["error"] == "bad_threshold"


def test_missing_folder_is_not_scannable(client, tmp_path):
    ana = create_user(client, "ana")
    service_id = new_service(client, ana, tmp_path / "gone", 100)
    response = client.post(f"/api/storage/scan/{service_id}")
    assert response.status_code == 404
    assert response.json()["error"] == "not_scannable"


def test_scan_all_and_overview(client, tmp_path):
    ana = create_user(client, "ana")
    small = new_service(client, ana, tmp_path / "empty", 100)
    (tmp_path / "empty").mkdir()
    big = new_service(client, ana, make_site(tmp_path / "site"), 100)

    data = client.post("/api/storage/scan-all").json()
    assert data["scanned"] == 2

    services = client.get("/api/storage/overview").json()["services"]
    assert [s["id"] for s in services] == [big, small]
    assert services[0]["color"] == "#16a34a"


def test_storage_requires_admin(client):
    create_user(client, "sofia", role="support")
    login(client, "sofia", "secret-pass")
    assert client.post("/api/storage/scan-all").status_code == 403


def test_internal_api_key(client, tmp_path):
    ana = create_user(client, "ana")
    service_id = new_service(client, ana, make_site(tmp_path / "site"), 100)
    client.cookies.clear()

    assert client.post(f"/internal/storage/scan/{service_id}").status_code == 403
    assert client.post(f"/internal/storage/scan/{service_id}", headers={"X-Internal-Api-Key": "wrong"}).status_code == 403

    scanned = client.post(f"/internal/storage/scan/{service_id}", headers=INTERNAL_KEY)
    assert scanned.status_code == 200
    assert scanned.json()["result"]["used_mb"] == 2.0

    status = client.get(f"/internal/storage/status/{service_id}", headers=INTERNAL_KEY).json()
    assert status["used_mb"] == 2.0
    assert status["status"] == "ok"
    assert status["last_scan_result"]["file_count"] == 2


def test_internal_api_rejects_remote_host(client, monkeypatch):
    monkeypatch.setattr(client.app.state.settings, "INTERNAL_API_ALLOWED_HOSTS", ["127.0.0.1"])
    response = client.post("/internal/storage/scan-all", headers=INTERNAL_KEY)
    assert response.status_code == 403
