from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from ..clients.base import DataStoreClient
from ..credentials.cache import CredentialCache
from ..domain.errors import SizeOverflowError
from ..domain.models import FetchResult, TenantInfo
from ..observability.logging import get_logger
from ..presentation.planner import PresentationPlanner, RenderPlan
from ..presentation.text import truncate_error_message
from ..tenants.verifier import TenantVerifier


log = get_logger("entry_view")

MISSING_CREDENTIAL_TEXT = (
    "No Open Cloud API key is registered for universe {universe_id}. "
    "Ask an operator to add it to `DATASTORE_API_KEYS` (or the datastore "
    "secret) with DataStore read access for this universe, then try again."
)


class OutcomeKind(str, Enum):
    OK = "ok"
    INVALID_INPUT = "invalid_input"
    MISSING_CREDENTIAL = "missing_credential"
    TENANT_NOT_FOUND = "tenant_not_found"
    NOT_FOUND = "not_found"
    ERROR = "error"
    SIZE_OVERFLOW = "size_overflow"


@dataclass(frozen=True, slots=True)
class ViewOutcome:
    kind: OutcomeKind
    message: str | None = None
    title: str | None = None
    plan: RenderPlan | None = None
    tenant: TenantInfo | None = None
    # Entry key the plan was built for (the resolved record key for players).
    key: str | None = None
    # (label, value) pairs shown above the data, e.g. ("Key", "gold_100").
    context: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.OK


def parse_positive_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() and raw > 0 else None
    s = str(raw or "").strip()
    if not s.isdigit():
        return None
    try:
        v = int(s)
    except ValueError:
        # isdigit() also accepts superscripts and other non-decimal digits.
        return None
    return v if v > 0 else None


def _invalid(message: str) -> ViewOutcome:
    return ViewOutcome(kind=OutcomeKind.INVALID_INPUT, message=message)


class EntryViewHandler:
    """
    Orchestrates one "show me this entry" request:

    credential check -> universe check (which also yields the display
    metadata) -> fetch -> plan.

    Every method returns a ViewOutcome; nothing raises past this boundary.
    The datastore client is never called without a credential, and never
    asked for data before the universe has been verified.
    """

    def __init__(
        self,
        *,
        credentials: CredentialCache,
        client: DataStoreClient,
        planner: PresentationPlanner,
        verifier: TenantVerifier | None = None,
    ) -> None:
        self._credentials = credentials
        self._client = client
        self._planner = planner
        self._verifier = verifier or TenantVerifier(client)

    async def show_entry(self, key: Any, universe_id: Any, datastore: Any) -> ViewOutcome:
        k = str(key or "").strip()
        if not k:
            return _invalid("Please provide a valid entry key.")
        uid = parse_positive_int(universe_id)
        if uid is None:
            return _invalid("Please provide a valid Universe ID.")
        ds = str(datastore or "").strip()
        if not ds:
            return _invalid("Please provide a datastore name.")

        return await self._run(
            universe_id=uid,
            datastore=ds,
            plan_key=k,
            title=f"Datastore Entry: {k}",
            context=(("Key", k), ("Universe ID", str(uid)), ("Datastore", ds)),
            not_found=f'No data found for key "{k}" in datastore "{ds}".',
            fetch=lambda: self._client.fetch_entry(k, uid, ds),
        )

    async def show_record(self, user_id: Any, universe_id: Any, datastore: Any) -> ViewOutcome:
        user = parse_positive_int(user_id)
        if user is None:
            return _invalid("Please provide a valid User ID.")
        uid = parse_positive_int(universe_id)
        if uid is None:
            return _invalid("Please provide a valid Universe ID.")
        ds = str(datastore or "").strip()
        if not ds:
            return _invalid("Please provide a datastore name.")
        try:
            record_key = self._client.record_key(user)
        except (KeyError, IndexError, ValueError) as e:
            log.error("record_key_template_invalid", error=str(e) or type(e).__name__)
            return ViewOutcome(kind=OutcomeKind.ERROR, message="Error: the player record key template is misconfigured.")

        return await self._run(
            universe_id=uid,
            datastore=ds,
            plan_key=record_key,
            title=f"Player Data: {user}",
            context=(("User ID", str(user)), ("Universe ID", str(uid)), ("Datastore", ds)),
            not_found=f'No data found for user {user} in datastore "{ds}".',
            fetch=lambda: self._client.fetch_record(user, uid, ds),
        )

    async def _run(
        self,
        *,
        universe_id: int,
        datastore: str,
        plan_key: str,
        title: str,
        context: tuple[tuple[str, str], ...],
        not_found: str,
        fetch: Callable[[], Awaitable[FetchResult]],
    ) -> ViewOutcome:
        try:
            if not self._credentials.has_credential(universe_id):
                return ViewOutcome(
                    kind=OutcomeKind.MISSING_CREDENTIAL,
                    message=MISSING_CREDENTIAL_TEXT.format(universe_id=universe_id),
                    context=context,
                )

            check = await self._verifier.verify(universe_id)
            if not check.success:
                return ViewOutcome(
                    kind=OutcomeKind.TENANT_NOT_FOUND,
                    message=check.error_message or f"Universe {universe_id} could not be verified.",
                    context=context,
                )

            result = await fetch()
            if not result.success:
                log.warning(
                    "entry_fetch_failed",
                    universe_id=universe_id,
                    datastore=datastore,
                    error=truncate_error_message(result.error_message or ""),
                )
                return ViewOutcome(
                    kind=OutcomeKind.ERROR,
                    message=truncate_error_message(f"Error: {result.error_message or 'request failed'}"),
                    context=context,
                )
            if result.data is None:
                return ViewOutcome(kind=OutcomeKind.NOT_FOUND, message=not_found, context=context)

            tenant = check.info
            plan = self._planner.plan(result.data, key=plan_key)
            log.info(
                "entry_view_planned",
                universe_id=universe_id,
                datastore=datastore,
                strategy=plan.strategy.value,
                truncated=plan.truncated,
            )
            return ViewOutcome(
                kind=OutcomeKind.OK,
                title=title,
                plan=plan,
                tenant=tenant,
                key=plan_key,
                context=context,
            )
        except SizeOverflowError as e:
            log.error(
                "entry_size_overflow",
                universe_id=universe_id,
                datastore=datastore,
                size_bytes=e.size_bytes,
                limit_bytes=e.limit_bytes,
            )
            return ViewOutcome(
                kind=OutcomeKind.SIZE_OVERFLOW,
                message=truncate_error_message(f"Error: {e.message}"),
                context=context,
            )
        except Exception as e:
            log.exception("entry_view_failed", universe_id=universe_id, datastore=datastore)
            return ViewOutcome(
                kind=OutcomeKind.ERROR,
                message=truncate_error_message(f"Error: {str(e) or type(e).__name__}"),
                context=context,
            )
