import logging
import math
import os
import sys
from pathlib import Path
from typing import Optional

import psycopg2
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict

_project_root = Path(__file__).resolve().parents[1]
if str(_project_root) not in sys.path:
    sys.path.append(str(_project_root))

try:
    from backend import app_context
    from backend.app.feature_gates import FeatureGateError
    from backend.app.routes.subscription import router as subscription_router
    from backend.app.services.entitlements import shutdown_entitlement_runtime, start_entitlement_runtime
except ModuleNotFoundError as exc:
    if exc.name != "backend":
        raise
    import app_context  # type: ignore[no-redef]
    from app.feature_gates import FeatureGateError  # type: ignore[no-redef]
    from app.routes.subscription import router as subscription_router  # type: ignore[no-redef]
    from app.services.entitlements import (  # type: ignore[no-redef]
        shutdown_entitlement_runtime,
        start_entitlement_runtime,
    )


load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


DB_CFG = dict(
    host=os.getenv("DB_HOST", "127.0.0.1"),
    port=int(os.getenv("DB_PORT", "5432")),
    dbname=os.getenv("DB_NAME", "inventory_db"),
    user=os.getenv("DB_USER", "inventory_user"),
    password=os.getenv("DB_PASSWORD", "inventory_pass"),
    connect_timeout=_parse_connect_timeout(os.getenv("DB_CONNECT_TIMEOUT", "5")),
)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me")
JWT_ALGORITHM = "HS256"


class SessionUser(BaseModel):
    id: str
    tenant_id: str
    email: Optional[str] = None

    model_config = ConfigDict(frozen=True)


def get_conn():
    return psycopg2.connect(**DB_CFG)


def get_current_user(session_token: Optional[str] = None) -> SessionUser:
    if not session_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        claims = jwt.decode(session_token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from exc

    user_id = claims.get("sub")
    tenant_id = claims.get("tenant_id")
    if not user_id or not tenant_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return SessionUser(id=str(user_id), tenant_id=str(tenant_id), email=claims.get("email"))


app_context.configure(get_conn=get_conn, get_current_user=get_current_user)

app = FastAPI(title="Subscription Entitlements API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[os.getenv("APP_BASE_URL", "http://localhost:5173")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(subscription_router)


@app.exception_handler(FeatureGateError)
async def handle_feature_gate_error(request: Request, exc: FeatureGateError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=dict(exc.payload))


@app.on_event("startup")
async def start_entitlements() -> None:
    app.state.entitlements = start_entitlement_runtime()


@app.on_event("shutdown")
async def stop_entitlements() -> None:
    shutdown_entitlement_runtime()
