"""Optional dependency helpers with actionable error messages."""

from __future__ import annotations

import importlib


def _distribution_name(module: str) -> str:
    # opentelemetry.instrumentation.system_metrics -> opentelemetry-instrumentation-system-metrics
    return module.replace(".", "-").replace("_", "-")


def require_instrumentation(module: str) -> None:
    """Check that an instrumentation *module* is importable, or raise with install hint.

    The hint names the import that actually failed, which is the instrumented
    library itself (``fastapi``, ``httpx``) when only the instrumentation
    package is installed.
    """
    try:
        importlib.import_module(module)
    except ImportError as e:
        missing = (e.name or module).split(".")[0]
        if missing == "opentelemetry":
            missing = e.name or module
        raise RuntimeError(
            f"'{_distribution_name(missing)}' is required for this instrumentation "
            f"({module}): pip install teleboot[instrumentation]"
        ) from None
