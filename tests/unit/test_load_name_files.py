"""
Unit tests for the name-file import orchestrator.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine

from affirm_name.ingestion.ddl import name_datasets, names
from affirm_name.ingestion.errors import DiscoveryError, PreconditionError, StorageError
from affirm_name.ingestion.import_config import ImportConfig
from affirm_name.ingestion.load_name_files import main, process_name_file, run_import
from affirm_name.ingestion.source_files import source_checksum


def _write(cfg: ImportConfig, filename: str, content: str) -> Path:
    path = cfg.input_dir / filename
    path.write_text(content, encoding="utf-8")
    return path


def _name_rows(engine: Engine) -> list[tuple]:
    with engine.connect() as connection:
        return [
            tuple(row)
            for row in connection.execute(
                select(names.c.year, names.c["name"], names.c.gender, names.c["count"]).order_by(names.c.id)
            )
        ]


def _dataset_statuses(engine: Engine) -> dict[str, str]:
    with engine.connect() as connection:
        rows = connection.execute(select(name_datasets.c.source_file_name, name_datasets.c.parse_status))
        return {row.source_file_name: row.parse_status for row in rows}


def test_import_creates_dataset_and_records(store_engine: Engine, import_config: ImportConfig) -> None:
    source_file = _write(import_config, "yob2023.txt", "Mary,F,7065\nJohn,M,5500")

    summary = run_import(store_engine, import_config)

    assert summary.count("imported") == 1
    assert summary.total_records == 2
    assert _name_rows(store_engine) == [(2023, "Mary", "F", 7065), (2023, "John", "M", 5500)]
    assert _dataset_statuses(store_engine) == {"yob2023.txt": "loaded"}
    with store_engine.connect() as connection:
        stored_checksum = connection.execute(select(name_datasets.c.checksum)).scalar_one()
    assert stored_checksum == source_checksum(source_file)


def test_rerun_skips_every_file_and_keeps_counts(store_engine: Engine, import_config: ImportConfig) -> None:
    _write(import_config, "yob2022.txt", "Olivia,F,16573\n")
    _write(import_config, "yob2023.txt", "Mary,F,7065\nJohn,M,5500\n")

    first = run_import(store_engine, import_config)
    second = run_import(store_engine, import_config)

    assert first.total_records == 3
    assert [result.state for result in second.results] == ["skipped", "skipped"]
    assert second.total_records == 0
    assert len(_name_rows(store_engine)) == 3


def test_invalid_gender_fails_only_that_file(store_engine: Engine, import_config: ImportConfig) -> None:
    _write(import_config, "yob2020.txt", "Anna,F,12\nBob,X,10\n")
    _write(import_config, "yob2021.txt", "Carl,M,8\n")

    summary = run_import(store_engine, import_config)

    failed, imported = summary.results
    assert failed.state == "failed"
    assert "yob2020.txt:2:" in failed.message
    assert "invalid gender 'X'" in failed.message
    assert imported.state == "imported"
    assert _name_rows(store_engine) == [(2021, "Carl", "M", 8)]
    assert _dataset_statuses(store_engine) == {"yob2020.txt": "failed", "yob2021.txt": "loaded"}


def test_fixed_file_is_retried_after_failure(store_engine: Engine, import_config: ImportConfig) -> None:
    source_file = _write(import_config, "yob2020.txt", "Anna,F,12\nBob,X,10\n")
    run_import(store_engine, import_config)

    source_file.write_text("Anna,F,12\nBob,M,10\n", encoding="utf-8")
    summary = run_import(store_engine, import_config)

    assert summary.results[0].state == "imported"
    assert summary.total_records == 2
    with store_engine.connect() as connection:
        assert connection.execute(select(func.count()).select_from(name_datasets)).scalar_one() == 1


def test_filename_without_year_is_skipped_with_warning(
    store_engine: Engine, import_config: ImportConfig, caplog: pytest.LogCaptureFixture
) -> None:
    _write(import_config, "data.txt", "Mary,F,10\n")
    _write(import_config, "yob2023.txt", "Mary,F,7065\n")

    with caplog.at_level("WARNING", logger="ingestion"):
        summary = run_import(store_engine, import_config)

    states = {Path(result.source_file).name: result.state for result in summary.results}
    assert states == {"data.txt": "failed", "yob2023.txt": "imported"}
    assert any("skipping file" in record.getMessage() and "data.txt" in record.getMessage() for record in caplog.records)
    assert summary.total_records == 1


def test_consistency_failure_leaves_no_records(store_engine: Engine, import_config: ImportConfig) -> None:
    _write(import_config, "yob2023.txt", "Mary,F,7065\nJohn,M,5500\n")

    with patch("affirm_name.ingestion.bulk_loader._insert_rows", return_value=1):
        summary = run_import(store_engine, import_config)

    assert summary.results[0].state == "failed"
    assert "expected to write 2 rows" in summary.results[0].message
    assert _name_rows(store_engine) == []
    assert _dataset_statuses(store_engine) == {"yob2023.txt": "failed"}


def test_registry_failure_is_contained(store_engine: Engine, import_config: ImportConfig) -> None:
    source_file = _write(import_config, "yob2023.txt", "Mary,F,7065\n")

    with patch(
        "affirm_name.ingestion.load_name_files.register_dataset",
        side_effect=StorageError("Failed to create dataset for yob2023.txt: connection lost"),
    ):
        result = process_name_file(store_engine, source_file, 1, import_config)

    assert result.state == "failed"
    assert result.dataset_id is None
    assert "connection lost" in result.message


def test_missing_jurisdiction_aborts_run(store_engine: Engine, import_config: ImportConfig) -> None:
    _write(import_config, "yob2023.txt", "Mary,F,7065\n")

    with pytest.raises(PreconditionError):
        run_import(store_engine, import_config.with_overrides(jurisdiction_code="CA"))


def test_empty_input_dir_aborts_run(store_engine: Engine, import_config: ImportConfig) -> None:
    with pytest.raises(DiscoveryError):
        run_import(store_engine, import_config)


def _run_cli(engine: Engine, cfg: ImportConfig, argv: list[str]) -> None:
    with patch("affirm_name.ingestion.load_name_files.create_store_engine", return_value=engine), patch(
        "affirm_name.ingestion.load_name_files.configure_logging"
    ), patch("affirm_name.ingestion.load_name_files.load_import_config", return_value=cfg):
        main(argv)


def test_cli_exit_code_for_missing_source_files(
    store_engine: Engine, import_config: ImportConfig, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as exc:
        _run_cli(store_engine, import_config, [])

    assert exc.value.code == 3
    assert "no_source_files" in capsys.readouterr().err


def test_cli_exit_code_for_missing_jurisdiction(
    store_engine: Engine, import_config: ImportConfig, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(import_config, "yob2023.txt", "Mary,F,7065\n")

    with pytest.raises(SystemExit) as exc:
        _run_cli(store_engine, import_config, ["--jurisdiction", "CA"])

    assert exc.value.code == 2
    assert "missing_reference_data" in capsys.readouterr().err


def test_cli_unreachable_store_is_not_reported_as_missing_reference_data(
    import_config: ImportConfig, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(import_config, "yob2023.txt", "Mary,F,7065\n")
    unmigrated = create_engine("sqlite+pysqlite:///:memory:", future=True)

    with pytest.raises(SystemExit) as exc:
        _run_cli(unmigrated, import_config, [])

    err = capsys.readouterr().err
    assert exc.value.code == 1
    assert "store_unavailable" in err
    assert "missing_reference_data" not in err


def test_cli_prints_summary(
    store_engine: Engine, import_config: ImportConfig, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(import_config, "yob2023.txt", "Mary,F,7065\nJohn,M,5500\n")

    _run_cli(store_engine, import_config, [])

    output = capsys.readouterr().out
    assert '"total_records": 2' in output
    assert '"imported": 1' in output


def test_oversized_count_fails_that_file_and_run_continues(store_engine: Engine, import_config: ImportConfig) -> None:
    _write(import_config, "yob2020.txt", "Anna,F,99999999999999999999\n")
    _write(import_config, "yob2021.txt", "Carl,M,8\n")

    summary = run_import(store_engine, import_config)

    failed, imported = summary.results
    assert failed.state == "failed"
    assert "yob2020.txt:1:" in failed.message
    assert "exceeds maximum" in failed.message
    assert imported.state == "imported"
    assert _name_rows(store_engine) == [(2021, "Carl", "M", 8)]
