from __future__ import annotations

import json
import logging
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.domain.models import now_utc

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
AUDITED_READ_PATH_KEYWORDS = ("/document",)
AUDIT_CONTEXT_STATE_KEY = "_audit_context"
UNAUDITED_PATHS = {"/healthz", "/readyz"}

audit_logger = logging.getLogger("app.audit")
logger = logging.getLogger(__name__)


def write_audit_log(
    *,
    action: str,
    resource: str,
    method: str,
    status_code: int,
    detail: dict[str, Any] | None = None,
) -> None:
    audit_logger.info(
        "%s %s %s -> %s %s",
        method,
        resource,
        action,
        status_code,
        json.dumps(detail or {}, default=str, sort_keys=True),
        extra={"audit": detail or {}},
    )


def _deep_merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
            continue
        merged[key] = value
    return merged


def _status_outcome(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code == 404:
        return "not_found"
    if status_code >= 400:
        return "rejected"
    return "success"


def should_audit_request(method: str, path: str) -> bool:
    if method in WRITE_METHODS:
        return True
    return any(keyword in path for keyword in AUDITED_READ_PATH_KEYWORDS)


def set_audit_context(
    request: Request,
    *,
    action: str | None = None,
    resource: str | None = None,
    detail: dict[str, Any] | None = None,
) -> None:
    context_raw = getattr(request.state, AUDIT_CONTEXT_STATE_KEY, {})
    context = dict(context_raw) if isinstance(context_raw, dict) else {}

    if action is not None:
        context["action"] = action
    if resource is not None:
        context["resource"] = resource

    if detail:
        previous_detail = context.get("detail")
        if isinstance(previous_detail, dict):
            context["detail"] = _deep_merge(previous_detail, detail)
        else:
            context["detail"] = detail

    setattr(request.state, AUDIT_CONTEXT_STATE_KEY, context)


def build_audit_detail(request: Request, *, action: str, resource: str, status_code: int) -> dict[str, Any]:
    route = request.scope.get("route")
    path = request.url.path
    return {
        "who": {
            "client_ip": request.client.host if request.client is not None else None,
            "user_agent": request.headers.get("user-agent"),
        },
        "when": {
            "request_ts": now_utc().isoformat(),
        },
        "where": {
            "path": path,
            "route": getattr(route, "path", path),
            "query": request.url.query,
        },
        "what": {
            "action": action,
            "resource": resource,
            "method": request.method,
        },
        "result": {
            "status_code": status_code,
            "outcome": _status_outcome(status_code),
        },
    }


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        path = request.url.path
        method = request.method
        if path in UNAUDITED_PATHS:
            return response
        context_raw = getattr(request.state, AUDIT_CONTEXT_STATE_KEY, {})
        context = context_raw if isinstance(context_raw, dict) else {}
        has_explicit_context = any(key in context for key in ("action", "resource", "detail"))
        if not should_audit_request(method, path) and not has_explicit_context:
            return response

        raw_action = context.get("action")
        raw_resource = context.get("resource")
        action: str = raw_action if isinstance(raw_action, str) else f"{method}:{path}"
        resource: str = raw_resource if isinstance(raw_resource, str) else path
        base_detail = build_audit_detail(request, action=action, resource=resource, status_code=response.status_code)
        context_detail = context.get("detail")
        detail = _deep_merge(base_detail, context_detail) if isinstance(context_detail, dict) else base_detail

        try:
            write_audit_log(
                action=action,
                resource=resource,
                method=method,
                status_code=response.status_code,
                detail=detail,
            )
        except Exception:
            # Audit never blocks the response.
            logger.exception("Failed to write audit record for %s %s", method, path)
        return response
