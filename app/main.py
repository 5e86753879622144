"""
HTTP surface for Decider

Thin FastAPI layer over the orchestrators, the Rules Store and the status
queries. All business logic lives in the `decider` package; routes only
parse input, call one component and shape the JSON response.

DESIGN PRINCIPLES:
1. Bad input is a 400 and an unknown rule is a 404; a failed run or an
   unreadable sheet is a 500 with a JSON body
2. Defaults for dates are computed in the configured timezone
3. Components are built on first use so importing this module never
   touches the spreadsheet
"""

import traceback
from typing import Any, Optional

import structlog
from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from decider.audit import configure_logging
from decider.config import get_settings, validate_all_settings
from decider.orchestrator import AppComponents, ReconciliationError, create_app_components
from decider.rules import RuleNotFoundError
from decider.services.storage import StorageError
from decider.validation import (
    RuleValidator,
    ValidationError,
    parse_iso_date,
    parse_modifier_percent,
    require_field,
)

logger = structlog.get_logger(__name__)


def get_components(request: Request) -> AppComponents:
    """Dependency: the app's components, created on the first request."""
    if request.app.state.components is None:
        request.app.state.components = create_app_components()
    return request.app.state.components


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json")


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app_settings = get_settings().app
    configure_logging(app_settings.log_level)

    app = FastAPI(
        title="Decider",
        description="Daily and weekly accountability reconciliation",
        version="1.0.0",
    )
    app.state.components = components

    # =========================================================================
    # ERROR MAPPING
    # =========================================================================

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": str(exc), "field": exc.field},
        )

    @app.exception_handler(RuleNotFoundError)
    async def rule_not_found_handler(request: Request, exc: RuleNotFoundError):
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": str(exc), "rule_name": exc.rule_name},
        )

    @app.exception_handler(ReconciliationError)
    async def reconciliation_error_handler(request: Request, exc: ReconciliationError):
        logger.error(
            "reconciliation_request_failed",
            run_type=exc.run_type,
            period=exc.period,
            error=str(exc),
        )
        content = {
            "success": False,
            "error": str(exc),
            "type": "reconciliation_error",
        }
        if not app_settings.is_production:
            content["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return JSONResponse(status_code=500, content=content)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        """Storage failures outside a reconciliation run, e.g. reading rules."""
        logger.error("storage_request_failed", path=request.url.path, error=str(exc))
        components = request.app.state.components
        if components is not None:
            await components.audit_logger.log_error(
                error_type=type(exc).__name__,
                error_message=str(exc),
                details={"path": request.url.path},
            )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc), "type": "storage_error"},
        )

    # =========================================================================
    # ROUTES
    # =========================================================================

    @app.get("/health")
    def health_check():
        return {"status": "ok", "settings": validate_all_settings()}

    @app.post("/reconcile")
    async def reconcile(
        payload: Optional[dict] = Body(default=None),
        components: AppComponents = Depends(get_components),
    ):
        """Run the daily (default) or weekly reconciliation."""
        payload = payload or {}
        run_type = payload.get("type") or "daily"
        run_date = parse_iso_date(payload.get("date"), field="date")

        if run_type == "daily":
            result = await components.daily.run(run_date)
        elif run_type == "weekly":
            result = await components.weekly.run(week_start=run_date)
        else:
            raise ValidationError(
                f"type must be 'daily' or 'weekly', got '{run_type}'", field="type",
            )
        return {"success": True, "type": run_type, "results": _dump(result)}

    @app.post("/reconcile/weekly")
    async def reconcile_weekly(
        payload: Optional[dict] = Body(default=None),
        components: AppComponents = Depends(get_components),
    ):
        payload = payload or {}
        week_start = parse_iso_date(payload.get("week_start"), field="week_start")
        result = await components.weekly.run(week_start=week_start)
        return {"success": True, "type": "weekly", "results": _dump(result)}

    @app.get("/rules/status")
    async def rules_status(components: AppComponents = Depends(get_components)):
        rules = await components.rules.get_all_rules()
        modified = await components.rules.get_modified_rules()
        issues = RuleValidator().check_all(list(rules.values()))
        return {
            "success": True,
            "rules": {name: _dump(rule) for name, rule in rules.items()},
            "modified_rules": {name: _dump(rule) for name, rule in modified.items()},
            "total_rules": len(rules),
            "modified_count": len(modified),
            "issues": [_dump(issue) for issue in issues],
        }

    @app.post("/rules/modify")
    async def rules_modify(
        payload: Optional[dict] = Body(default=None),
        components: AppComponents = Depends(get_components),
    ):
        payload = payload or {}
        rule_name = require_field(payload, "rule_name")
        modifier = parse_modifier_percent(require_field(payload, "modifier_percent"))
        modification = await components.rules.update_modifier(
            rule_name, modifier, payload.get("reason"),
        )
        return {"success": True, "modification": _dump(modification)}

    @app.post("/rules/reset")
    async def rules_reset(
        payload: Optional[dict] = Body(default=None),
        components: AppComponents = Depends(get_components),
    ):
        rule_name = require_field(payload or {}, "rule_name")
        modification = await components.rules.reset_modifier(rule_name)
        return {"success": True, "modification": _dump(modification)}

    @app.get("/status/daily")
    async def status_daily(
        date: Optional[str] = None,
        components: AppComponents = Depends(get_components),
    ):
        on_date = parse_iso_date(date, field="date") or components.today()
        status = await components.status.daily_status(on_date)
        return {"success": True, "status": _dump(status)}

    @app.get("/status/weekly")
    async def status_weekly(
        week_start: Optional[str] = None,
        components: AppComponents = Depends(get_components),
    ):
        start = parse_iso_date(week_start, field="week_start") or components.today()
        status = await components.status.weekly_status(start)
        return {"success": True, "status": _dump(status)}

    return app


app = create_app()
