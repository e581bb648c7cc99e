from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Query, Request

from ..config import Settings

router = APIRouter()


def _configured(flag: bool) -> str:
    return "configured" if flag else "not configured"


@router.get("/health")
async def health_check(
    request: Request,
    deep: bool = Query(False, description="Also probe the upstream paymaster and bundler"),
) -> Dict[str, Any]:
    """Report service configuration, optionally probing upstream providers"""
    settings: Settings = request.app.state.settings

    payload: Dict[str, Any] = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "paymaster": _configured(settings.has_paymaster),
            "bundler": _configured(settings.has_bundler),
        },
        "chain": {
            "id": settings.chain_id,
            "name": settings.chain_name,
            "rpc": settings.rpc_url,
        },
    }

    if deep:
        payload["providers"] = {
            "paymaster": await request.app.state.paymaster.health_check(),
            "bundler": await request.app.state.bundler.health_check(),
        }

    return payload
