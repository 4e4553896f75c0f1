from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker
from typer.testing import CliRunner

from edureach import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_db(engine, monkeypatch):
    monkeypatch.setattr(cli, "SessionLocal", sessionmaker(bind=engine, expire_on_commit=False))
    monkeypatch.setattr(cli, "create_all", lambda: None)


@pytest.fixture
def leads(store):
    return [
        store.create_lead({"name": "Asha Rao", "email": "asha@example.com", "phone": "12345"}),
        store.create_lead({"name": "Ravi Kumar", "email": "ravi@example.com", "role": "Principal"}),
    ]


def test_rescore(leads, store, db_session):
    result = runner.invoke(cli.app, ["rescore"])
    db_session.expire_all()

    assert result.exit_code == 0
    assert "Rescored 2/2 leads" in result.output
    assert store.get_lead(leads[0].id).ai_score == 5


def test_score_single_lead(leads):
    result = runner.invoke(cli.app, ["score", str(leads[1].id)])

    assert result.exit_code == 0
    assert f"Lead {leads[1].id}: score 3" in result.output


def test_score_unknown_lead():
    result = runner.invoke(cli.app, ["score", str(uuid4())])
    assert result.exit_code == 1


def test_check_leads(leads):
    result = runner.invoke(cli.app, ["check-leads", "--limit", "1"])

    assert result.exit_code == 0
    assert "Found 2 leads, showing 1:" in result.output
    assert result.output.count("Email:") == 1


def test_test_email_in_dev_mode():
    result = runner.invoke(cli.app, ["test-email", "asha@example.com"])
    assert result.exit_code == 0
    assert "Email sent to asha@example.com" in result.output
