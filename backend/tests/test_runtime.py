"""Tests for the public runtime engine against the in-process API."""

import asyncio
import logging
from datetime import datetime, timedelta

import pytest

from anamnesis.engine.errors import AutosaveFailure
from anamnesis.engine.runtime import (
    PublicRuntimeEngine,
    SessionState,
    compute_progress,
    deserialize_answer,
    serialize_answers,
)
from anamnesis.models.anamnesis import AnamnesisResponse, AnamnesisStatus
from anamnesis.models.template import FieldType
from anamnesis.schemas.anamnesis import AnamnesisCreate
from anamnesis.schemas.template import FieldRead
from anamnesis.services.anamnesis import AnamnesisService

pytestmark = pytest.mark.anyio


def open_session(transport, token, interval=3600):
    return PublicRuntimeEngine(transport, token, autosave_interval=interval)


def test_serialize_answers_sorted_and_textual():
    payload = serialize_answers({5: ["A", "B"], 2: None, 3: 42})
    assert payload == [
        {"campo_id": 2, "resposta": ""},
        {"campo_id": 3, "resposta": "42"},
        {"campo_id": 5, "resposta": '["A", "B"]'},
    ]


def test_deserialize_multi_choice():
    checkbox = FieldRead(id=1, secao_id=1, tipo_campo="checkbox", label="x", ordem=0, opcoes=["A"])
    assert deserialize_answer(checkbox, '["A"]') == ["A"]
    assert deserialize_answer(checkbox, "") == []
    assert deserialize_answer(checkbox, "A") == ["A"]
    assert deserialize_answer(None, '["A"]') == '["A"]'


def test_compute_progress_counts_all_sections():
    fields = [
        FieldRead(id=i, secao_id=1, tipo_campo="text", label=str(i), ordem=i) for i in range(1, 4)
    ]
    assert compute_progress(fields, {}) == 0
    assert compute_progress(fields, {1: "a", 2: "", 3: []}) == 33
    assert compute_progress(fields, {1: "a", 2: "b"}) == 67
    assert compute_progress([], {1: "a"}) == 0


async def test_skin_intake_walkthrough(transport, dispatched, skin_fields, db_session):
    session = open_session(transport, dispatched.link_token)
    assert await session.load() is SessionState.ACTIVE
    assert session.step == 0
    assert session.total_steps == 2

    session.set_answer(skin_fields["Name"], "Ana Souza")
    assert session.next_step() is False
    assert session.step == 0
    assert set(session.errors) == {skin_fields["Phone"]}

    session.set_answer(skin_fields["Phone"], "(11) 91234-5678")
    assert session.next_step() is True
    assert session.step == 1
    assert session.errors == {}
    assert session.progress == 67
    assert session.is_last_step

    assert await session.finalize() is False
    assert set(session.consent_errors) == {"consentimento_lgpd", "consentimento_tratamento"}
    assert session.state is SessionState.ACTIVE

    session.set_consent("consentimento_lgpd", True)
    session.set_consent("consentimento_tratamento", True)
    assert await session.finalize() is True
    assert session.state is SessionState.COMPLETED
    await session.close()

    reloaded = open_session(transport, dispatched.link_token)
    assert await reloaded.load() is SessionState.COMPLETED
    assert reloaded.answers[skin_fields["Phone"]] == "(11) 91234-5678"
    await reloaded.close()

    db_session.expire_all()
    record = AnamnesisService.get_anamnesis(db_session, dispatched.id)
    assert record.status == AnamnesisStatus.COMPLETED
    assert record.progresso_percentual == 100
    assert record.paciente["nome_completo"] == "Ana Souza"
    assert record.paciente["telefone"] == "(11) 91234-5678"
    assert record.paciente["origem"] == "test"


async def test_next_saves_draft_in_background(transport, dispatched, skin_fields, db_session):
    session = open_session(transport, dispatched.link_token)
    await session.load()

    session.set_answer(skin_fields["Name"], "Ana")
    session.set_answer(skin_fields["Phone"], "123")
    assert session.next_step() is True
    await session.settle()

    db_session.expire_all()
    record = AnamnesisService.get_anamnesis(db_session, dispatched.id)
    assert record.progresso_percentual == 67
    assert {r.campo_id: r.resposta for r in record.respostas} == {
        skin_fields["Name"]: "Ana",
        skin_fields["Phone"]: "123",
    }
    await session.close()


async def test_saved_answers_are_restored(transport, dispatched, skin_fields):
    first = open_session(transport, dispatched.link_token)
    await first.load()
    first.set_answer(skin_fields["Allergies"], "Penicillin")
    assert await first.save_draft() is True
    await first.close()

    second = open_session(transport, dispatched.link_token)
    await second.load()
    assert second.answers[skin_fields["Allergies"]] == "Penicillin"
    assert second.step == 0
    await second.close()


async def test_previous_step_floors_at_zero(transport, dispatched, skin_fields):
    session = open_session(transport, dispatched.link_token)
    await session.load()

    session.previous_step()
    assert session.step == 0

    session.set_answer(skin_fields["Name"], "Ana")
    session.set_answer(skin_fields["Phone"], "123")
    session.next_step()
    session.previous_step()
    assert session.step == 0
    await session.close()


async def test_finalize_only_on_last_step(transport, dispatched, skin_fields):
    session = open_session(transport, dispatched.link_token)
    await session.load()
    for name in ("consentimento_lgpd", "consentimento_tratamento"):
        session.set_consent(name, True)

    assert await session.finalize() is False
    assert session.state is SessionState.ACTIVE
    await session.close()


async def test_unknown_token_is_invalid(transport, db_session):
    session = open_session(transport, "no-such-token")
    assert await session.load() is SessionState.INVALID
    assert session.render_step() is None


async def test_expired_link_is_invalid(transport, db_session, skin_intake):
    expired = AnamnesisService.create_anamnesis(db_session, AnamnesisCreate(
        template_id=skin_intake.id,
        link_expira_em=datetime.utcnow() - timedelta(minutes=1),
    ))

    session = open_session(transport, expired.link_token)
    assert await session.load() is SessionState.INVALID

    db_session.expire_all()
    assert AnamnesisService.get_anamnesis(db_session, expired.id).status == AnamnesisStatus.EXPIRED


async def test_answers_ignored_once_completed(transport, dispatched, skin_fields):
    session = open_session(transport, dispatched.link_token)
    await session.load()
    session.set_answer(skin_fields["Name"], "Ana")
    session.set_answer(skin_fields["Phone"], "123")
    session.next_step()
    session.set_consent("consentimento_lgpd", True)
    session.set_consent("consentimento_tratamento", True)
    assert await session.finalize() is True

    session.set_answer(skin_fields["Name"], "Someone else")
    assert session.answers[skin_fields["Name"]] == "Ana"
    assert session.next_step() is False
    assert await session.save_draft() is False
    await session.close()


async def test_autosave_runs_on_interval_and_stops(transport, dispatched, skin_fields, db_session):
    session = open_session(transport, dispatched.link_token, interval=0.01)
    await session.load()
    session.set_answer(skin_fields["Allergies"], "Latex")

    for _ in range(50):
        await asyncio.sleep(0.01)
        db_session.expire_all()
        if db_session.query(AnamnesisResponse).filter(
            AnamnesisResponse.anamnesis_id == dispatched.id
        ).count():
            break

    await session.close()
    assert session._autosave_task is None

    db_session.expire_all()
    record = AnamnesisService.get_anamnesis(db_session, dispatched.id)
    assert {r.campo_id: r.resposta for r in record.respostas} == {skin_fields["Allergies"]: "Latex"}
    assert record.progresso_percentual == 33


async def test_autosave_failure_is_silent(flaky_transport, dispatched, skin_fields):
    flaky_transport.fail_methods = {"POST"}
    session = open_session(flaky_transport, dispatched.link_token)
    await session.load()

    session.set_answer(skin_fields["Allergies"], "None")
    assert await session.save_draft() is False
    assert session.notifier.errors == []
    assert session.state is SessionState.ACTIVE
    await session.close()


async def test_draft_failure_is_logged_with_status(flaky_transport, dispatched, skin_fields, caplog):
    flaky_transport.fail_methods = {"POST"}
    session = open_session(flaky_transport, dispatched.link_token)
    await session.load()
    session.set_answer(skin_fields["Allergies"], "None")

    with pytest.raises(AutosaveFailure) as exc_info:
        await session._post_draft(session.answers)
    assert exc_info.value.status_code == 503

    with caplog.at_level(logging.WARNING, logger="anamnesis.engine.runtime"):
        assert await session.save_draft() is False
    assert "Draft save" in caplog.text
    assert "Server unavailable" in caplog.text
    await session.close()


async def test_multi_choice_answers_round_trip(transport, template_factory, db_session):
    template = template_factory("Choices", [
        ("Only", False, [
            {"tipo_campo": FieldType.CHECKBOX, "label": "Treatments", "opcoes": ["Laser", "Peeling"]},
        ]),
    ])
    anamnesis = AnamnesisService.create_anamnesis(db_session, AnamnesisCreate(template_id=template.id))
    field_id = template.secoes[0].campos[0].id

    session = open_session(transport, anamnesis.link_token)
    await session.load()
    rendered = session.render_step().inputs[0]
    rendered.toggle_option("Laser", True)
    rendered.toggle_option("Peeling", True)
    assert session.answers[field_id] == ["Laser", "Peeling"]
    assert session.progress == 100
    await session.save_draft()
    await session.close()

    reloaded = open_session(transport, anamnesis.link_token)
    await reloaded.load()
    assert reloaded.answers[field_id] == ["Laser", "Peeling"]
    await reloaded.close()
