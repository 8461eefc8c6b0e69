"""
Saved sessions - models, capture, import/export and batched rendering.

The Qt management view lives in tabdog.sessions.tree and is imported
on demand so the core works without a display.
"""

from .models import (
    TabRecord,
    Session,
    SessionKey,
    ExplicitKey,
    LEGACY,
    LEGACY_LABEL,
    SessionError,
    group_sessions,
    parse_session_key,
)
from .capture import (
    CaptureResult,
    capture,
    all_tabs,
    all_except_active,
    only_active,
    get_predicate,
)
from .io import (
    ImportParseError,
    ImportResult,
    export_text,
    import_text,
    export_json,
    import_json,
    backup_filename,
)
from .render import BatchedRenderer, RenderedSession
from .manager import SessionManager, Outcome

__all__ = [
    "TabRecord",
    "Session",
    "SessionKey",
    "ExplicitKey",
    "LEGACY",
    "LEGACY_LABEL",
    "SessionError",
    "group_sessions",
    "parse_session_key",
    "CaptureResult",
    "capture",
    "all_tabs",
    "all_except_active",
    "only_active",
    "get_predicate",
    "ImportParseError",
    "ImportResult",
    "export_text",
    "import_text",
    "export_json",
    "import_json",
    "backup_filename",
    "BatchedRenderer",
    "RenderedSession",
    "SessionManager",
    "Outcome",
]
