from __future__ import annotations

from typing import Any

from ..clients.base import DataStoreClient
from ..domain.models import VerifyResult
from ..observability.logging import get_logger


log = get_logger("tenant_verifier")


class TenantVerifier:
    """
    Confirms a universe id resolves to a real, reachable universe before any
    datastore call is spent on it. Never raises; no caching.
    """

    def __init__(self, client: DataStoreClient) -> None:
        self._client = client

    async def verify(self, universe_id: Any) -> VerifyResult:
        if isinstance(universe_id, bool) or not isinstance(universe_id, int) or universe_id <= 0:
            return VerifyResult(
                success=False,
                error_message=f"`{universe_id}` is not a valid Universe ID.",
            )

        try:
            info = await self._client.fetch_tenant_metadata(universe_id)
        except Exception as e:
            log.warning("tenant_verify_exception", universe_id=universe_id, error=str(e) or type(e).__name__)
            return VerifyResult(
                success=False,
                error_message=f"Could not reach universe {universe_id}. Try again in a minute.",
            )

        if not info.reachable:
            return VerifyResult(
                success=False,
                error_message=f"Could not reach universe {universe_id}. Check the API key permissions and try again.",
                info=info,
            )
        if not info.exists:
            return VerifyResult(
                success=False,
                error_message=f"Universe {universe_id} does not exist.",
                info=info,
            )
        return VerifyResult(success=True, info=info)
