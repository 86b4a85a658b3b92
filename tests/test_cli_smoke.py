from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from cli import main
from model.python_model import UNITS_MANIFEST


def _write_minimal_repo(root: Path) -> None:
    (root / "Old").mkdir(parents=True, exist_ok=True)
    (root / "Old" / "X.py").write_text("VALUE = 1\n", encoding="utf-8")
    (root / "app").mkdir(parents=True, exist_ok=True)
    (root / "app" / "main.py").write_text("from Old.X import VALUE\n", encoding="utf-8")


def _write_config(path: Path, transformations: list[dict[str, object]]) -> Path:
    path.write_bytes(orjson.dumps({"transformations": transformations}))
    return path


def test_cli_restructure_smoke(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    config = _write_config(
        tmp_path / "restructure.json",
        [{"type": "RenameNamespace", "source": "Old", "target": "New"}],
    )

    exit_code = main(
        ["restructure", "--solution", str(repo_root), "--config", str(config), "--verbose"]
    )

    assert exit_code == 0
    assert (repo_root / "New" / "X.py").is_file()
    assert not (repo_root / "Old").exists()
    assert (repo_root / "app" / "main.py").read_text(encoding="utf-8") == (
        "from New.X import VALUE\n"
    )


def test_cli_restructure_missing_solution_exits_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = _write_config(tmp_path / "restructure.json", [])
    missing = tmp_path / "missing"

    exit_code = main(["restructure", "--solution", str(missing), "--config", str(config)])

    assert exit_code == 2
    captured = capsys.readouterr()
    assert f"solution: {missing}" in captured.err


def test_cli_restructure_unsupported_type_exits_1(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    config = _write_config(
        tmp_path / "restructure.json",
        [{"type": "SplitModule", "source": "Old", "target": "New"}],
    )

    exit_code = main(["restructure", "--solution", str(repo_root), "--config", str(config)])

    assert exit_code == 1
    assert "Transformation type not supported" in capsys.readouterr().err
    assert (repo_root / "Old" / "X.py").is_file()


def test_cli_restructure_conflict_exits_1_and_keeps_tree(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    (repo_root / "app" / "Infrastructure").mkdir(parents=True)
    (repo_root / "app" / "Infrastructure" / "db.py").write_text("", encoding="utf-8")
    (repo_root / "app" / "legacy").mkdir()
    (repo_root / "app" / "legacy" / "__init__.py").write_text(
        "from app.Infrastructure import db\n", encoding="utf-8"
    )
    config = _write_config(
        tmp_path / "restructure.json",
        [{"type": "MoveNamespace", "source": "app.legacy", "target": "app.Domain.legacy"}],
    )

    exit_code = main(["restructure", "--solution", str(repo_root), "--config", str(config)])

    assert exit_code == 1
    err = capsys.readouterr().err
    assert "Dependency violates architecture layers: app.Infrastructure" in err
    assert (repo_root / "app" / "legacy" / "__init__.py").is_file()
    assert not (repo_root / "app" / "Domain").exists()


def test_cli_generate_clean_architecture(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    exit_code = main(["generate", "--solution", str(repo_root), "--template", "clean"])

    assert exit_code == 0
    assert (repo_root / "Domain" / "Entities" / "entities_service.py").is_file()
    assert (repo_root / "Application" / "UseCases" / "use_cases_service.py").is_file()
    assert (repo_root / "Infrastructure" / "External" / "external_service.py").is_file()
    assert (repo_root / "Presentation" / "__init__.py").is_file()
    manifest = orjson.loads((repo_root / UNITS_MANIFEST).read_bytes())
    assert manifest == {
        "units": {
            "Application": ["Domain"],
            "Infrastructure": ["Application", "Domain"],
            "Presentation": ["Application"],
        }
    }


def test_cli_generate_unknown_template_exits_1(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    exit_code = main(["generate", "--solution", str(repo_root), "--template", "onion"])

    assert exit_code == 1
    assert not (repo_root / "Domain").exists()


def test_cli_restore_latest_backup(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    config = _write_config(
        tmp_path / "restructure.json",
        [{"type": "RenameNamespace", "source": "Old", "target": "New"}],
    )
    assert main(["restructure", "--solution", str(repo_root), "--config", str(config)]) == 0

    exit_code = main(["restore", "--solution", str(repo_root)])

    assert exit_code == 0
    assert (repo_root / "Old" / "X.py").read_text(encoding="utf-8") == "VALUE = 1\n"
    assert (repo_root / "app" / "main.py").read_text(encoding="utf-8") == (
        "from Old.X import VALUE\n"
    )


def test_cli_restore_explicit_backup(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    assert main(["generate", "--solution", str(repo_root)]) == 0
    (repo_root / "Old" / "X.py").write_text("changed\n", encoding="utf-8")
    snapshot = next(p for p in (repo_root / ".codetower_backup").iterdir() if p.is_dir())

    exit_code = main(["restore", "--backup", str(snapshot)])

    assert exit_code == 0
    assert (repo_root / "Old" / "X.py").read_text(encoding="utf-8") == "VALUE = 1\n"


def test_cli_restore_without_backups_exits_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)

    exit_code = main(["restore", "--solution", str(repo_root)])

    assert exit_code == 2
    assert "no backups found" in capsys.readouterr().err


def test_cli_restore_backup_only_uses_configured_backup_dir(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    (repo_root / "pkg").mkdir(parents=True)
    (repo_root / "pkg" / "a.py").write_text("X = 1\n", encoding="utf-8")
    (repo_root / "codetower.toml").write_text('backup_dir = "var/backups"\n', encoding="utf-8")
    assert main(["generate", "--solution", str(repo_root)]) == 0
    snapshot = next(p for p in (repo_root / "var" / "backups").iterdir() if p.is_dir())
    (repo_root / "pkg" / "a.py").write_text("X = 2\n", encoding="utf-8")

    exit_code = main(["restore", "--backup", str(snapshot)])

    assert exit_code == 0
    assert (repo_root / "pkg" / "a.py").read_text(encoding="utf-8") == "X = 1\n"
    assert not (repo_root / "var" / "pkg").exists()
