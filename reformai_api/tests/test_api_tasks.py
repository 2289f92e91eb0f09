"""Endpoint tests for tasks, projects, history, backups and sessions against an isolated SQLite database."""

import json
import sys
from pathlib import Path

from fastapi.testclient import TestClient

API_MODULES = [
    "reformai_api.api",
    "reformai_api.services.schedule_service",
    "reformai_api.services.task_service",
    "reformai_api.supabase_service",
    "reformai_api.database",
    "reformai_api.config",
]

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def _bootstrap_api(tmp_path: Path, monkeypatch, **env):
    """Reload the FastAPI app against an isolated SQLite database."""

    db_path = tmp_path / "reformai.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("REFORMAI_STORAGE_BACKEND", "database")
    for key, value in env.items():
        monkeypatch.setenv(key, value)

    for module_name in API_MODULES:
        if module_name in sys.modules:
            del sys.modules[module_name]

    import reformai_api.api as api_module  # type: ignore

    return api_module


def _create_task(client: TestClient, title="Pintura de paredes", room="Sala", headers=None, **extra) -> dict:
    response = client.post("/api/tasks", json={"title": title, "room": room, **extra}, headers=headers or {})
    assert response.status_code == 201, response.text
    return response.json()


def _history(client: TestClient, **params) -> list[dict]:
    response = client.get("/api/history", params=params)
    assert response.status_code == 200
    return response.json()["entries"]


def test_health_and_catalog(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["storage_backend"] == "database"

    catalog = client.get("/api/catalog").json()
    assert "Sala" in catalog["rooms"]["Internos"]
    assert catalog["subtask_templates"]["Pintura de teto"][0] == "Preparação"


def test_create_task_fills_template_and_logs_history(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)

    task = _create_task(client, priority="Alta")

    assert task["status"] == "pending"
    assert task["priority"] == "Alta"
    assert task["category"] == "PINTURA"
    assert [st["title"] for st in task["subTasks"]][:2] == ["Forração", "Lixamento"]
    assert client.get(f"/api/tasks/{task['id']}").json() == task

    entries = _history(client)
    assert len(entries) == 1
    assert entries[0]["type"] == "creation"
    assert entries[0]["action"] == "Nova tarefa adicionada"
    assert entries[0]["details"] == "Pintura de paredes em Sala"
    assert entries[0]["user"] == "Visitante"


def test_logged_in_user_is_mestre(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)

    _create_task(client, headers={"X-Logged-In": "true", "X-User-Id": "u1"})

    entry = _history(client)[0]
    assert entry["user"] == "Mestre"
    assert entry["user_id"] == "u1"


def test_blank_title_is_rejected(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)

    response = client.post("/api/tasks", json={"title": "  ", "room": "Sala"})
    assert response.status_code == 422
    assert client.get("/api/tasks").json() == []


def test_toggling_all_subtasks_completes_the_task(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    task = _create_task(client, title="Pintura de teto")

    for subtask in task["subTasks"]:
        response = client.post(f"/api/tasks/{task['id']}/subtasks/{subtask['id']}/toggle")
        assert response.status_code == 200
        task = response.json()

    assert task["status"] == "completed"
    actions = [entry["action"] for entry in _history(client)]
    assert actions.count("Sub-etapa concluída") == 4
    assert actions.count("Tarefa finalizada") == 1

    stats = client.get("/api/stats").json()
    assert stats["total_progress"] == 100
    assert stats["by_room"]["Sala"] == {"total": 1, "progress": 100}

    # Reopening one step makes the task pending again.
    first = task["subTasks"][0]["id"]
    task = client.post(f"/api/tasks/{task['id']}/subtasks/{first}/toggle").json()
    assert task["status"] == "pending"
    assert client.get("/api/stats").json()["total_progress"] == 75


def test_manual_subtask_and_unknown_ids(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    task = _create_task(client, title="Trocar maçaneta", room="Quarto 1")
    assert task["subTasks"] == []

    response = client.post(f"/api/tasks/{task['id']}/subtasks", json={"title": "Comprar maçaneta"})
    assert response.status_code == 200
    assert [st["title"] for st in response.json()["subTasks"]] == ["Comprar maçaneta"]
    assert _history(client)[0]["details"] == "Comprar maçaneta para Trocar maçaneta"

    response = client.post(f"/api/tasks/{task['id']}/subtasks", json={"title": " "})
    assert response.status_code == 400

    response = client.post(f"/api/tasks/{task['id']}/subtasks/nope/toggle")
    assert response.status_code == 404

    response = client.get("/api/tasks/does-not-exist")
    assert response.status_code == 404
    assert "not found" in response.json()["error"]


def test_update_and_delete_task(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    task = _create_task(client)

    response = client.patch(f"/api/tasks/{task['id']}", json={"room": "Cozinha", "priority": "Baixa"})
    assert response.status_code == 200
    assert response.json()["room"] == "Cozinha"
    assert response.json()["priority"] == "Baixa"
    assert len(response.json()["subTasks"]) == 6

    response = client.delete(f"/api/tasks/{task['id']}")
    assert response.status_code == 204
    assert client.get(f"/api/tasks/{task['id']}").status_code == 404

    entry = _history(client)[0]
    assert entry["type"] == "deletion"
    assert entry["details"] == "Pintura de paredes em Cozinha"


def test_task_list_keeps_insertion_order_and_filters_room(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    _create_task(client, title="A", room="Sala")
    _create_task(client, title="B", room="Cozinha")
    _create_task(client, title="C", room="Sala")

    assert [t["title"] for t in client.get("/api/tasks").json()] == ["A", "B", "C"]
    assert [t["title"] for t in client.get("/api/tasks", params={"room": "Sala"}).json()] == ["A", "C"]


def test_photo_upload_and_size_limit(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch, REFORMAI_MAX_UPLOAD_BYTES="64")
    client = TestClient(api_module.app)
    task = _create_task(client)

    response = client.post(
        f"/api/tasks/{task['id']}/photos",
        files=[("files", ("parede.png", PNG_BYTES, "image/png")), ("files", ("teto.png", PNG_BYTES, "image/png"))],
    )
    assert response.status_code == 200
    photos = response.json()["photos"]
    assert len(photos) == 2
    assert photos[0].startswith("data:image/png;base64,")

    response = client.post(
        f"/api/tasks/{task['id']}/photos",
        files=[("files", ("grande.png", b"x" * 65, "image/png"))],
    )
    assert response.status_code == 413
    assert len(client.get(f"/api/tasks/{task['id']}").json()["photos"]) == 2


def test_attach_video(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    task = _create_task(client)

    response = client.post(f"/api/tasks/{task['id']}/video", json={"videoUrl": "data:video/mp4;base64,AAAA"})
    assert response.status_code == 200
    assert response.json()["video_url"] == "data:video/mp4;base64,AAAA"

    response = client.post(f"/api/tasks/{task['id']}/video", json={"video_url": "https://example.com/v.mp4"})
    assert response.status_code == 400


def test_backup_export_and_import(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    _create_task(client, title="Pintura de teto")
    _create_task(client, title="Trocar encanamento", room="Banheiro Social")

    response = client.get("/api/backup/export")
    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith('attachment; filename="backup_obra_')
    exported = json.loads(response.content.decode("utf-8"))
    assert [t["title"] for t in exported] == ["Pintura de teto", "Trocar encanamento"]
    assert "subTasks" in exported[0]

    backup = json.dumps(exported[:1], ensure_ascii=False).encode("utf-8")
    response = client.post(
        "/api/backup/import",
        files={"file": ("backup.json", backup, "application/json")},
        headers={"X-Logged-In": "true"},
    )
    assert response.status_code == 200
    assert response.json()["imported"] == 1
    assert response.json()["history_entry"]["details"] == "1 tarefas restauradas."

    tasks = client.get("/api/tasks").json()
    assert [t["title"] for t in tasks] == ["Pintura de teto"]
    assert tasks[0]["id"] == exported[0]["id"]

    entry = _history(client)[0]
    assert entry["action"] == "Importação de Backup"
    assert entry["user"] == "Mestre"


def test_backup_import_rejects_bad_files(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    _create_task(client)

    response = client.post("/api/backup/import", files={"file": ("b.json", b'{"a": 1}', "application/json")})
    assert response.status_code == 400
    assert response.json()["error"] == "Arquivo inválido: Formato de backup não reconhecido."

    response = client.post("/api/backup/import", files={"file": ("b.json", b"not json", "application/json")})
    assert response.status_code == 400
    assert response.json()["error"] == "Erro ao ler o arquivo de backup."

    assert len(client.get("/api/tasks").json()) == 1


def test_backup_import_into_another_project(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    project_a = client.post("/api/projects", json={"name": "Casa"}, headers={"X-User-Id": "u1"}).json()
    project_b = client.post("/api/projects", json={"name": "Apartamento"}, headers={"X-User-Id": "u1"}).json()
    original = _create_task(client, title="Pintura de teto", project_id=project_a["id"])
    _create_task(client, title="Substituída", project_id=project_b["id"])

    backup = client.get("/api/backup/export", params={"project_id": project_a["id"]}).content
    response = client.post(
        "/api/backup/import",
        params={"project_id": project_b["id"]},
        files={"file": ("backup.json", backup, "application/json")},
    )
    assert response.status_code == 200
    assert response.json()["imported"] == 1

    tasks_b = client.get("/api/tasks", params={"project_id": project_b["id"]}).json()
    assert [t["title"] for t in tasks_b] == ["Pintura de teto"]
    assert tasks_b[0]["project_id"] == project_b["id"]
    assert tasks_b[0]["id"] != original["id"]

    tasks_a = client.get("/api/tasks", params={"project_id": project_a["id"]}).json()
    assert [t["id"] for t in tasks_a] == [original["id"]]


def test_reset_tasks(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)
    project = client.post("/api/projects", json={"name": "Casa"}, headers={"X-User-Id": "u1"}).json()
    _create_task(client, title="A", project_id=project["id"])
    _create_task(client, title="B", project_id=project["id"])
    _create_task(client, title="Fora do projeto")

    response = client.delete("/api/tasks", params={"project_id": project["id"]}, headers={"X-Logged-In": "true"})
    assert response.status_code == 200
    assert response.json()["action"] == "Projeto Zerado"

    assert client.get("/api/tasks", params={"project_id": project["id"]}).json() == []
    assert [t["title"] for t in client.get("/api/tasks").json()] == ["Fora do projeto"]
    entry = _history(client, project_id=project["id"])[0]
    assert (entry["type"], entry["user"]) == ("deletion", "Mestre")
    assert entry["details"] == "Todas as tarefas foram apagadas pelo usuário."

    client.delete("/api/tasks")
    assert client.get("/api/tasks").json() == []
    assert client.delete("/api/tasks", params={"project_id": "missing"}).status_code == 404


def test_projects_scope_tasks(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)

    response = client.post("/api/projects", json={"name": "Apartamento"}, headers={"X-User-Id": "u1"})
    assert response.status_code == 201
    project = response.json()
    assert project["status"] == "active"
    assert client.post("/api/projects", json={"name": "Sem dono"}).status_code == 400

    _create_task(client, title="A", project_id=project["id"])
    _create_task(client, title="B")
    assert [t["title"] for t in client.get("/api/tasks", params={"project_id": project["id"]}).json()] == ["A"]
    assert [e["details"] for e in _history(client, project_id=project["id"])] == ["A em Sala"]

    response = client.patch(f"/api/projects/{project['id']}", json={"status": "completed"})
    assert response.json()["status"] == "completed"
    assert [p["id"] for p in client.get("/api/projects", params={"user_id": "u1"}).json()] == [project["id"]]

    assert client.delete(f"/api/projects/{project['id']}").status_code == 204
    assert client.get(f"/api/projects/{project['id']}").status_code == 404
    assert [t["title"] for t in client.get("/api/tasks").json()] == ["B"]

    response = client.post("/api/tasks", json={"title": "C", "room": "Sala", "project_id": "missing"})
    assert response.status_code == 404


def test_categories(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)

    response = client.post("/api/categories", json={"name": "Pintura", "icon": "paint-roller"})
    assert response.status_code == 201
    assert [c["name"] for c in client.get("/api/categories").json()] == ["Pintura"]


def test_session_login_logout(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch)
    client = TestClient(api_module.app)

    login = client.post("/api/session/login")
    assert login.status_code == 200
    assert login.json()["user"] == "Mestre"
    assert login.json()["history_entry"]["user"] == "Visitante"

    logout = client.post("/api/session/logout", json={"user_id": "u1"})
    assert logout.json()["logged_in"] is False
    assert logout.json()["history_entry"]["action"] == "Logout"
    assert logout.json()["history_entry"]["user_id"] == "u1"

    assert [e["action"] for e in _history(client)] == ["Logout", "Login"]


def test_history_is_capped(tmp_path, monkeypatch):
    api_module = _bootstrap_api(tmp_path, monkeypatch, REFORMAI_HISTORY_LIMIT="5")
    client = TestClient(api_module.app)

    for i in range(7):
        _create_task(client, title=f"Tarefa {i}")

    entries = _history(client)
    assert len(entries) == 5
    assert entries[0]["details"] == "Tarefa 6 em Sala"
    assert entries[-1]["details"] == "Tarefa 2 em Sala"


def test_history_timestamps_fit_a_64_bit_column(tmp_path, monkeypatch):
    _bootstrap_api(tmp_path, monkeypatch)
    from sqlalchemy import BigInteger
    from reformai_api.database import HistoryRecord

    assert isinstance(HistoryRecord.__table__.c.timestamp.type, BigInteger)
