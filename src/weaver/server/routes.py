"""Weave REST API.

All routes are mounted under `/api`. Weave operation failures propagate as
:class:`weaver.errors.WeaveError` and are mapped to HTTP statuses by the
handlers registered in :func:`weaver.server.app.create_app`.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException, Request

from weaver import __version__
from weaver.core.models import Weave
from weaver.core.serialization import to_serialized
from weaver.errors import WeaveStructuralError
from weaver.runtime.braid import BraidEntry
from weaver.server.models import BraidRequest, CreateWeaveRequest, TraceRequest
from weaver.service import WeaveService

router = APIRouter()


def _service(request: Request) -> WeaveService:
    service = getattr(request.app.state, "service", None)
    if not isinstance(service, WeaveService):
        # This should never happen for the real app, but keeps the API fail-fast.
        raise HTTPException(status_code=500, detail="Weave service not configured")
    return service


@router.get("/health")
def health() -> dict[str, object]:
    return {"status": "ok", "version": __version__}


@router.get("/weaves")
def list_weaves(request: Request) -> list[dict[str, object]]:
    return [s.model_dump(mode="json") for s in _service(request).list()]


@router.post("/weaves", status_code=201)
def create_weave(request: Request, payload: CreateWeaveRequest) -> dict[str, Any]:
    weave = _service(request).create(
        payload.name, weave_id=payload.id, description=payload.description
    )
    return to_serialized(weave)


@router.get("/weaves/{weave_id}")
def get_weave(request: Request, weave_id: str) -> dict[str, Any]:
    return to_serialized(_service(request).load(weave_id))


@router.put("/weaves/{weave_id}")
def put_weave(request: Request, weave_id: str, weave: Weave) -> dict[str, Any]:
    if weave.id != weave_id:
        raise WeaveStructuralError(
            f"save: body id {weave.id!r} does not match path id {weave_id!r}", operation="save"
        )
    return to_serialized(_service(request).save(weave))


@router.delete("/weaves/{weave_id}")
def delete_weave(request: Request, weave_id: str) -> dict[str, object]:
    _service(request).delete(weave_id)
    return {"deleted": weave_id}


@router.get("/weaves/{weave_id}/validate")
def validate_weave(request: Request, weave_id: str) -> dict[str, object]:
    return _service(request).validate(weave_id).to_json()


@router.post("/weaves/{weave_id}/ops/{operation}")
def run_operation(
    request: Request,
    weave_id: str,
    operation: str,
    arguments: Annotated[dict[str, Any] | None, Body()] = None,
) -> dict[str, Any]:
    # Path id wins over any weaveId in the body.
    return _service(request).dispatch(operation, {**(arguments or {}), "weaveId": weave_id})


@router.post("/trace")
def run_trace(request: Request, payload: TraceRequest) -> dict[str, object]:
    result = _service(request).trace(
        payload.weave_id, payload.start_knot, payload.payload, max_steps=payload.max_steps
    )
    return result.to_json()


@router.post("/braid")
def run_braid(request: Request, payload: BraidRequest) -> dict[str, object]:
    entries = [BraidEntry(start_knot=e.start_knot, payload=e.payload) for e in payload.entries]
    results = _service(request).braid(payload.weave_id, entries, max_steps=payload.max_steps)
    return {"results": [r.to_json() for r in results]}
