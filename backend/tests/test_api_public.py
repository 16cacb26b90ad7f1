"""API tests for dispatch and the public (token-bound) filling endpoints."""

from datetime import datetime, timedelta

from anamnesis.models.anamnesis import AnamnesisResponse
from anamnesis.schemas.anamnesis import AnamnesisCreate
from anamnesis.services.anamnesis import AnamnesisService

API = "/api/v1"
CONSENTS = {"consentimento_lgpd": True, "consentimento_tratamento": True}


def public(token, action=""):
    return f"{API}/public/anamnesis/{token}{action}"


def test_dispatch_issues_token_and_snapshot(client, skin_intake):
    response = client.post(
        f"{API}/anamneses", json={"template_id": skin_intake.id, "paciente": {"email": "a@b.c"}}
    )
    data = response.json()["data"]

    assert data["status"] == "in_progress"
    assert data["template_versao"] == skin_intake.versao
    assert len(data["link_token"]) >= 32
    expires = datetime.fromisoformat(data["link_expira_em"])
    assert timedelta(days=6) < expires - datetime.utcnow() <= timedelta(days=7)

    listed = client.get(f"{API}/anamneses", params={"template_id": skin_intake.id}).json()["data"]
    assert [a["id"] for a in listed] == [data["id"]]
    assert client.get(f"{API}/anamneses/{data['id']}").json()["data"]["paciente"] == {"email": "a@b.c"}
    assert client.get(f"{API}/anamneses/999").status_code == 404


def test_public_document(client, dispatched, skin_fields):
    response = client.get(public(dispatched.link_token))
    assert response.status_code == 200
    data = response.json()["data"]

    assert data["anamnese"]["status"] == "in_progress"
    assert data["template"]["nome"] == "Skin Intake"
    assert [s["secao"]["titulo"] for s in data["template"]["secoes"]] == ["Contact", "History"]
    assert data["paciente"] == {"origem": "test"}
    assert data["respostas_salvas"] == []
    assert "link_token" not in data["anamnese"]


def test_snapshot_is_frozen_at_dispatch(client, dispatched, skin_intake):
    history = skin_intake.secoes[1]
    client.post(f"{API}/sections/{history.id}/fields", json={"tipo_campo": "text", "label": "Added later"})

    data = client.get(public(dispatched.link_token)).json()["data"]
    labels = [c["label"] for s in data["template"]["secoes"] for c in s["campos"]]
    assert "Added later" not in labels


def test_unknown_token(client, db_session):
    response = client.get(public("nope"))
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_draft_save_is_idempotent(client, dispatched, skin_fields, db_session):
    payload = {
        "respostas": [
            {"campo_id": skin_fields["Name"], "resposta": "Ana"},
            {"campo_id": skin_fields["Allergies"], "resposta": "None"},
        ],
        "progresso": 67,
    }
    for _ in range(2):
        assert client.post(public(dispatched.link_token, "/draft"), json=payload).status_code == 200

    payload["respostas"][0]["resposta"] = "Ana Souza"
    client.post(public(dispatched.link_token, "/draft"), json=payload)

    rows = db_session.query(AnamnesisResponse).filter(
        AnamnesisResponse.anamnesis_id == dispatched.id
    ).all()
    assert sorted((r.campo_id, r.resposta) for r in rows) == sorted([
        (skin_fields["Name"], "Ana Souza"),
        (skin_fields["Allergies"], "None"),
    ])

    data = client.get(public(dispatched.link_token)).json()["data"]
    assert data["anamnese"]["progresso_percentual"] == 67
    assert len(data["respostas_salvas"]) == 2


def test_draft_ignores_unknown_fields(client, dispatched, skin_fields):
    payload = {"respostas": [{"campo_id": 99999, "resposta": "x"}], "progresso": 0}
    assert client.post(public(dispatched.link_token, "/draft"), json=payload).status_code == 200
    assert client.get(public(dispatched.link_token)).json()["data"]["respostas_salvas"] == []


def test_progress_out_of_range_is_rejected(client, dispatched):
    response = client.post(public(dispatched.link_token, "/draft"), json={"progresso": 150})
    assert response.status_code == 422


def test_expired_link_is_gone(client, db_session, skin_intake):
    expired = AnamnesisService.create_anamnesis(db_session, AnamnesisCreate(
        template_id=skin_intake.id,
        link_expira_em=datetime.utcnow() - timedelta(seconds=1),
    ))

    assert client.get(public(expired.link_token)).status_code == 410
    assert client.post(public(expired.link_token, "/draft"), json={}).status_code == 410
    listed = client.get(f"{API}/anamneses", params={"status_filter": "expired"}).json()["data"]
    assert [a["id"] for a in listed] == [expired.id]


def test_finalize_requires_consents(client, dispatched, skin_fields):
    answers = [
        {"campo_id": skin_fields["Name"], "resposta": "Ana"},
        {"campo_id": skin_fields["Phone"], "resposta": "123"},
    ]
    response = client.post(
        public(dispatched.link_token, "/finalize"),
        json={"respostas": answers, "consentimento_lgpd": True},
    )
    assert response.status_code == 400
    assert "consentimento_tratamento" in response.json()["error"]


def test_finalize_requires_required_fields(client, dispatched, skin_fields):
    response = client.post(
        public(dispatched.link_token, "/finalize"),
        json={"respostas": [{"campo_id": skin_fields["Name"], "resposta": "Ana"}], **CONSENTS},
    )
    assert response.status_code == 400
    assert "Phone" in response.json()["error"]


def test_finalize_completes_and_locks(client, dispatched, skin_fields):
    answers = [
        {"campo_id": skin_fields["Name"], "resposta": "Ana Souza"},
        {"campo_id": skin_fields["Phone"], "resposta": "(11) 91234-5678"},
    ]
    response = client.post(
        public(dispatched.link_token, "/finalize"),
        json={"respostas": answers, "consentimento_fotos": True, **CONSENTS},
    )
    assert response.status_code == 200

    record = client.get(f"{API}/anamneses/{dispatched.id}").json()["data"]
    assert record["status"] == "completed"
    assert record["progresso_percentual"] == 100
    assert record["consentimento_fotos"] is True
    assert record["data_preenchimento"] is not None
    assert record["paciente"]["nome_completo"] == "Ana Souza"
    assert record["paciente"]["telefone"] == "(11) 91234-5678"

    # Completed instances stay readable but reject writes
    assert client.get(public(dispatched.link_token)).json()["data"]["anamnese"]["status"] == "completed"
    assert client.post(public(dispatched.link_token, "/draft"), json={}).status_code == 409
    again = client.post(public(dispatched.link_token, "/finalize"), json={"respostas": answers, **CONSENTS})
    assert again.status_code == 409


def test_last_system_field_binding_wins():
    snapshot = {"secoes": [
        {"secao": {}, "campos": [{"id": 1, "campo_sistema": "email"}]},
        {"secao": {}, "campos": [
            {"id": 2, "campo_sistema": "email"},
            {"id": 3, "campo_sistema": None},
        ]},
    ]}
    record = AnamnesisService.apply_system_fields(
        snapshot, {1: "first@x.com", 2: "second@x.com", 3: "ignored"}, {"email": "old@x.com"}
    )
    assert record == {"email": "second@x.com"}

    blank_last = AnamnesisService.apply_system_fields(snapshot, {1: "first@x.com", 2: "  "})
    assert blank_last == {"email": "first@x.com"}
