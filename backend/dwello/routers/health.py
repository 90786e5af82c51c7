from datetime import datetime, timezone

from fastapi import APIRouter

from dwello.config import settings
from dwello.database import ping

router = APIRouter()


@router.get("/health")
def health_check() -> dict:
    return {
        "success": True,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "appName": settings.app_name,
        "database": "connected" if ping() else "disconnected",
        "walrus": {
            "publisher": settings.walrus_publisher_url,
            "aggregator": settings.walrus_aggregator_url,
        },
        "sui": {
            "network": settings.sui_network,
            "rpc": settings.sui_rpc_url,
        },
    }
