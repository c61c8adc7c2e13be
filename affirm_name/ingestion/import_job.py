# This module wraps the yearly name-file import in a Prefect flow.
# It exists so newly published years can be picked up on a schedule without manual CLI runs.
# The flow delegates to the same orchestrator as the CLI; re-runs are safe because loaded datasets are skipped.

from __future__ import annotations

from pathlib import Path
from typing import Any

from prefect import flow, get_run_logger

from affirm_name.common.db import create_store_engine
from affirm_name.ingestion.import_config import load_import_config
from affirm_name.ingestion.load_name_files import run_import


@flow(name="name-file-import")
def name_import_flow(
    input_dir: str | None = None,
    jurisdiction_code: str | None = None,
    config_path: str | None = None,
) -> dict[str, Any]:
    logger = get_run_logger()
    cfg = load_import_config(Path(config_path) if config_path else None).with_overrides(
        input_dir=input_dir,
        jurisdiction_code=jurisdiction_code,
    )
    engine = create_store_engine()
    try:
        summary = run_import(engine, cfg)
    finally:
        engine.dispose()
    logger.info(
        "name import completed imported=%s skipped=%s failed=%s total_records=%s",
        summary.count("imported"),
        summary.count("skipped"),
        summary.count("failed"),
        summary.total_records,
    )
    return summary.to_dict()


if __name__ == "__main__":
    name_import_flow()
