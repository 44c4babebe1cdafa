import re
from pathlib import Path

import pytest

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.dev_tasks import ThreadDispatcher
from src.app_shell import cli
from src.app_shell.cli import main
from src.app_shell.config import Settings
from src.app_shell.context import ServiceContext
from src.ports.tasks import TaskStatus

PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(PROJECT_ROOT)
    monkeypatch.setenv("HYN_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("HYN_RULES_PATH", str(PROJECT_ROOT / "rules.yaml"))
    monkeypatch.setenv("HYN_EMAIL_MODE", "inline")
    main(["migrate"])
    return tmp_path / "data"


def _seed(capsys: pytest.CaptureFixture[str]) -> str:
    main(["seed"])
    out = capsys.readouterr().out
    match = re.search(r"Group: Downtown Neighbors \(([0-9a-f-]+)\)", out)
    assert match, out
    return match.group(1)


def test_migrate_creates_database(cli_env: Path, capsys: pytest.CaptureFixture[str]):
    assert (cli_env / "hyn.db").is_file()

    main(["migrate"])
    assert "Applied 0 migration(s)" in capsys.readouterr().out


def test_seed_is_idempotent(cli_env: Path, capsys: pytest.CaptureFixture[str]):
    _seed(capsys)

    main(["seed"])
    assert "already present" in capsys.readouterr().out


def test_usage_after_seed(cli_env: Path, capsys: pytest.CaptureFixture[str]):
    _seed(capsys)

    main(["usage", "--email", "alice@example.com"])

    out = capsys.readouterr().out
    assert "Open requests:   1/5" in out
    assert "Groups created:  1/3" in out
    assert "Open invites:    0/10" in out


def test_invite_command(cli_env: Path, capsys: pytest.CaptureFixture[str]):
    group_id = _seed(capsys)

    main(["invite", group_id, "carol@example.com", "--inviter-email", "alice@example.com"])

    out = capsys.readouterr().out
    assert "Invite created for carol@example.com" in out
    assert "Link: http://localhost:5173/invite?token=" in out


def test_invite_by_non_owner_exits(cli_env: Path, capsys: pytest.CaptureFixture[str]):
    group_id = _seed(capsys)

    with pytest.raises(SystemExit) as exc:
        main(["invite", group_id, "carol@example.com", "--inviter-email", "bob@example.com"])

    assert exc.value.code == 1


def test_unknown_user_exits(cli_env: Path):
    with pytest.raises(SystemExit) as exc:
        main(["usage", "--email", "nobody@example.com"])

    assert exc.value.code == 1


def test_purge_invites(cli_env: Path, capsys: pytest.CaptureFixture[str]):
    main(["purge-invites"])

    assert "Purged 0 expired invite(s)." in capsys.readouterr().out


def test_bad_email_mode_exits(cli_env: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HYN_EMAIL_MODE", "carrier-pigeon")

    with pytest.raises(SystemExit) as exc:
        main(["purge-invites"])

    assert exc.value.code == 1


def test_invite_email_delivered_in_thread_mode(
    cli_env: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
):
    group_id = _seed(capsys)
    monkeypatch.setenv("HYN_EMAIL_MODE", "thread")
    contexts: list[ServiceContext] = []
    real_get_context = cli.get_context

    def _get_context(settings: Settings) -> ServiceContext:
        ctx = real_get_context(settings)
        contexts.append(ctx)
        return ctx

    monkeypatch.setattr(cli, "get_context", _get_context)

    main(["invite", group_id, "carol@example.com", "--inviter-email", "alice@example.com"])

    (ctx,) = contexts
    assert isinstance(ctx.dispatcher, ThreadDispatcher)
    assert [r.status for r in ctx.dispatcher.results] == [TaskStatus.SUCCESS]
    assert isinstance(ctx.email_sender, DevEmailAdapter)
    assert len(ctx.email_sender.get_emails_to("carol@example.com")) == 1


def test_malformed_group_id_exits(cli_env: Path, caplog: pytest.LogCaptureFixture):
    with pytest.raises(SystemExit) as exc:
        main(["invite", "not-a-uuid", "carol@example.com", "--inviter-email", "alice@example.com"])

    assert exc.value.code == 1
    assert "Invalid group id: not-a-uuid" in caplog.text
