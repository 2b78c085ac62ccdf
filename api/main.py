"""FastAPI server for screenbudget."""

from __future__ import annotations

import os
from typing import Optional, Dict, Any, List

from fastapi import FastAPI, HTTPException, Header, Depends
from pydantic import BaseModel, Field

from screenbudget import (
    ScreenTimeService,
    GrantCode,
    ValidationError,
    CodeNotFoundError,
    CodeAlreadyUsedError,
)


def _get_api_key() -> Optional[str]:
    return os.getenv("SCREENBUDGET_API_KEY")


def _require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    api_key = _get_api_key()
    if api_key and x_api_key != api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


app = FastAPI(title="screenbudget API", version="1.0.0")
app.state.service = None


def configure(service: ScreenTimeService) -> FastAPI:
    """Attach the device's service to the app."""
    app.state.service = service
    return app


def _service() -> ScreenTimeService:
    service = app.state.service
    if service is None:
        raise HTTPException(status_code=503, detail="Service not configured")
    return service


class LimitRequest(BaseModel):
    minutes: int


class GenerateCodesRequest(BaseModel):
    count: int
    minutes_per_code: int = 30


class RedeemRequest(BaseModel):
    input: str = Field(..., min_length=1)


class PinRequest(BaseModel):
    pin: str


class AutostartRequest(BaseModel):
    enabled: bool


class CodeResponse(BaseModel):
    value: str
    minutes_granted: int
    used: bool
    used_at: Optional[str] = None


def _code_response(code: GrantCode) -> CodeResponse:
    return CodeResponse(
        value=code.value,
        minutes_granted=code.minutes_granted,
        used=code.used,
        used_at=code.used_at.isoformat() if code.used_at else None,
    )


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/status")
def status(service: ScreenTimeService = Depends(_service)) -> Dict[str, Any]:
    return service.admin.status()


@app.post("/redeem")
def redeem(req: RedeemRequest, service: ScreenTimeService = Depends(_service)) -> Dict[str, Any]:
    try:
        result = service.admin.redeem_code_or_pin(req.input)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except CodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except CodeAlreadyUsedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return {
        "outcome": result.outcome.value,
        "minutes_granted": result.minutes_granted,
        "remaining_minutes": result.remaining_minutes,
        "message": result.message,
    }


@app.post("/limit", dependencies=[Depends(_require_api_key)])
def set_limit(req: LimitRequest, service: ScreenTimeService = Depends(_service)) -> Dict[str, Any]:
    try:
        minutes = service.admin.set_daily_limit(req.minutes)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"daily_limit_minutes": minutes}


@app.post("/codes", response_model=List[CodeResponse], dependencies=[Depends(_require_api_key)])
def generate_codes(
    req: GenerateCodesRequest,
    service: ScreenTimeService = Depends(_service),
) -> List[CodeResponse]:
    try:
        codes = service.admin.generate_codes(req.count, req.minutes_per_code)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [_code_response(c) for c in codes]


@app.get("/codes", response_model=List[CodeResponse], dependencies=[Depends(_require_api_key)])
def list_codes(service: ScreenTimeService = Depends(_service)) -> List[CodeResponse]:
    return [_code_response(c) for c in service.admin.list_codes()]


@app.delete("/codes/{value}", dependencies=[Depends(_require_api_key)])
def delete_code(value: str, service: ScreenTimeService = Depends(_service)) -> Dict[str, Any]:
    return {"removed": service.admin.delete_code(value)}


@app.post("/pin", dependencies=[Depends(_require_api_key)])
def change_pin(req: PinRequest, service: ScreenTimeService = Depends(_service)) -> Dict[str, Any]:
    try:
        service.admin.change_pin(req.pin)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"changed": True}


@app.post("/unlock", dependencies=[Depends(_require_api_key)])
def unlock(service: ScreenTimeService = Depends(_service)) -> Dict[str, Any]:
    return {"remaining_minutes": service.admin.unlock()}


@app.post("/autostart", dependencies=[Depends(_require_api_key)])
def set_autostart(
    req: AutostartRequest,
    service: ScreenTimeService = Depends(_service),
) -> Dict[str, Any]:
    return {"autostart_enabled": service.admin.set_autostart_enabled(req.enabled)}
