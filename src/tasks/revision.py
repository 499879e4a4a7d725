# src/tasks/revision.py - v1
"""revision task: content-token filenames in dist, record kept in tmp."""

from __future__ import annotations

import logging

from polyship.pipeline.models import TaskOutput
from polyship.pipeline.state import BuildState
from polyship.revision.revisioner import Revisioner
from polyship.tasks.files import write_text

logger = logging.getLogger(__name__)


def revision(state: BuildState) -> TaskOutput:
    settings = state.settings
    revisioner = Revisioner(
        extensions=settings.revision_extensions_list,
        exclude=settings.revision_exclude_list,
        scan_extensions=settings.revision_scan_extensions_list,
        token_length=settings.revision_token_length,
    )
    record = revisioner.revision(state.dist_root)
    write_text(
        state.tmp_root / settings.revision_manifest_name,
        record.model_dump_json(indent=2),
    )
    state.revision = record
    renamed = sum(1 for o, r in record.entries.items() if o != r)
    return TaskOutput(
        files_written=renamed + len(record.rewritten_files),
        data={"entries": dict(record.entries)},
    )
