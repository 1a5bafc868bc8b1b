"""Client-held workflow state over the record list.

WorkflowState keeps two layers: the confirmed records from the last load or
successful write, and an overlay of optimistic local changes keyed by record
id. Every view reads the confirmed list with the overlay applied. A failed
write leaves its overlay entry in place; nothing is rolled back.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal, Protocol

from bidsheet.models import ASSIGNEES, AuctionItem, UpdatePayload
from bidsheet.sample_data import sample_items
from bidsheet.services.brands import (
    BrandKey,
    brand_counts,
    brand_sort_key,
    matches_brand,
)
from bidsheet.utils.exceptions import BidSheetError, NotConfiguredError
from bidsheet.utils.logging import get_logger

logger = get_logger(__name__)

SELECT_USER_SCREEN = "select_user"
REFERENCE_URL_SLOTS = 5

MSG_LOAD_FAILED = "スプレッドシートの取得に失敗しました。サンプルデータを表示します。"
MSG_ENTRY_SAVED = "保存しました。次の商品に進みます。"
MSG_APPROVED = "合格として記録しました（S・T・U列を更新）"
MSG_REJECTED = "不合格として記録しました（S・T・U列を更新）"
MSG_FEEDBACK_SAVED = "フィードバックを保存しました（U列）"
MSG_FEEDBACK_CONFIRMED = "確認済みにしました（V列）"
MSG_SAVE_FAILED = "保存に失敗しました: {reason}"
MSG_SAMPLE_SUFFIX = "（サンプルデータ）"
MSG_ALL_JUDGED = "全 {count} 件の判定が完了しました！"
MSG_ALL_FEEDBACK_CONFIRMED = "{count} 件のフィードバックをすべて確認しました！"


class Mode(str, Enum):
    """Workflow tabs."""

    ENTRY = "entry"
    FEEDBACK = "feedback"
    APPROVAL = "approval"


class ConnectionStatus(str, Enum):
    LOADING = "loading"
    CONNECTED = "connected"
    SAMPLE = "sample"


class SortOrder(str, Enum):
    """Brand-name ordering of the approval queue."""

    NONE = "none"
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Notice:
    """A user-facing notification."""

    level: Literal["success", "error"]
    message: str


class ItemBackend(Protocol):
    """What WorkflowState needs from a record source.

    Satisfied by both SheetsItemStore and ItemsApiClient.
    """

    def fetch_all(self) -> list[AuctionItem]: ...

    def update(self, row_id: Any, payload: UpdatePayload) -> Any: ...


class WorkflowState:
    """Record list, mode selection and optimistic writes for one session.

    Args:
        backend: Record source used for loads and writes.
        notify: Callback receiving every Notice. Notices are logged either way.
    """

    def __init__(
        self,
        backend: ItemBackend,
        notify: Callable[[Notice], None] | None = None,
    ) -> None:
        self.backend = backend
        self._notify = notify
        self.mode = Mode.ENTRY
        self.current_user = ""
        self.status = ConnectionStatus.LOADING
        self._confirmed: list[AuctionItem] = []
        self._overlay: dict[str, dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # Records

    @property
    def items(self) -> list[AuctionItem]:
        """Confirmed records with pending local changes applied."""
        return [
            item.model_copy(update=self._overlay[item.id])
            if item.id in self._overlay
            else item
            for item in self._confirmed
        ]

    @property
    def pending_overlay(self) -> dict[str, dict[str, Any]]:
        """Local changes not yet confirmed by a successful write."""
        return {row_id: dict(fields) for row_id, fields in self._overlay.items()}

    def load(self) -> None:
        """Fetch every record from the backend.

        On failure the built-in sample records are shown and the status becomes
        ``sample``. One error notice is raised on entering that state, none
        when the backend is simply not configured.
        """
        was_degraded = self.status is ConnectionStatus.SAMPLE
        self.status = ConnectionStatus.LOADING
        try:
            items = self.backend.fetch_all()
        except Exception as exc:
            logger.warning(
                "Falling back to sample data",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            self._confirmed = sample_items()
            self._overlay.clear()
            self.status = ConnectionStatus.SAMPLE
            if not was_degraded and not isinstance(exc, NotConfiguredError):
                self._emit("error", MSG_LOAD_FAILED)
            return

        self._confirmed = list(items)
        self._overlay.clear()
        self.status = ConnectionStatus.CONNECTED
        logger.info("Records loaded", count=len(self._confirmed))

    # ------------------------------------------------------------------
    # User and mode

    def select_user(self, user: str) -> None:
        if user not in ASSIGNEES:
            raise ValueError(f"Unknown user: {user!r}")
        self.current_user = user

    def clear_user(self) -> None:
        self.current_user = ""

    def switch_mode(self, mode: Mode | str) -> None:
        self.mode = Mode(mode)

    @property
    def screen(self) -> str:
        """Screen to show: the mode, or the user picker when a user is needed."""
        if self.mode in (Mode.ENTRY, Mode.FEEDBACK) and not self.current_user:
            return SELECT_USER_SCREEN
        return self.mode.value

    # ------------------------------------------------------------------
    # Actions

    def save_entry(
        self,
        row_id: str,
        market_price: float | None,
        reference_urls: Sequence[str] = (),
        notes: str = "",
    ) -> bool:
        """Record an employee's research and mark the entry complete."""
        if not self.current_user:
            raise ValueError("Select a user before saving entries")
        if len(reference_urls) > REFERENCE_URL_SLOTS:
            raise ValueError(
                f"At most {REFERENCE_URL_SLOTS} reference URLs can be stored"
            )
        urls = list(reference_urls)
        urls += [""] * (REFERENCE_URL_SLOTS - len(urls))
        changes: dict[str, Any] = {"market_price": market_price}
        for slot, url in enumerate(urls, start=1):
            changes[f"reference_url{slot}"] = url
        changes.update(
            notes=notes,
            check=True,
            bid_target=market_price is not None,
            assignee=self.current_user,
        )
        return self._patch(row_id, changes, MSG_ENTRY_SAVED)

    def approve(self, row_id: str, feedback: str = "") -> bool:
        return self._judge(row_id, True, feedback)

    def reject(self, row_id: str, feedback: str = "") -> bool:
        return self._judge(row_id, False, feedback)

    def save_feedback(self, row_id: str, feedback: str) -> bool:
        """Change the feedback text without judging the record."""
        return self._patch(row_id, {"feedback": feedback}, MSG_FEEDBACK_SAVED)

    def acknowledge_feedback(self, row_id: str) -> bool:
        before = len(self.feedback_inbox(self.current_user))
        saved = self._patch(
            row_id, {"feedback_confirmed": True}, MSG_FEEDBACK_CONFIRMED
        )
        if before and not self.feedback_inbox(self.current_user):
            total = sum(
                1
                for item in self.items
                if item.assignee == self.current_user and item.feedback.strip()
            )
            self._emit("success", MSG_ALL_FEEDBACK_CONFIRMED.format(count=total))
        return saved

    def _judge(self, row_id: str, passed: bool, feedback: str) -> bool:
        before = self.pending_approval_count
        saved = self._patch(
            row_id,
            {
                "representative_check": True,
                "judgment_result": passed,
                "feedback": feedback,
            },
            MSG_APPROVED if passed else MSG_REJECTED,
        )
        if before and not self.pending_approval_count:
            checked = sum(1 for item in self.items if item.check)
            if checked:
                self._emit("success", MSG_ALL_JUDGED.format(count=checked))
        return saved

    def _patch(self, row_id: str, changes: Mapping[str, Any], message: str) -> bool:
        """Apply ``changes`` locally, then write them when connected.

        Returns True only when the backend confirmed the write.
        """
        if not any(item.id == row_id for item in self._confirmed):
            raise KeyError(f"No record with id {row_id}")

        payload = UpdatePayload.model_validate(changes)
        fields = payload.changes()
        entry = self._overlay.setdefault(row_id, {})
        entry.update(fields)
        entry["updated_at"] = datetime.now(UTC)

        if self.status is not ConnectionStatus.CONNECTED:
            logger.debug("Write skipped outside connected status", row_id=row_id)
            self._emit("success", message + MSG_SAMPLE_SUFFIX)
            return False

        try:
            self.backend.update(row_id, payload)
        except Exception as exc:
            reason = exc.message if isinstance(exc, BidSheetError) else str(exc)
            logger.error(
                "Write failed, keeping local change",
                row_id=row_id,
                error_type=type(exc).__name__,
            )
            self._emit(
                "error", MSG_SAVE_FAILED.format(reason=reason or "不明なエラー")
            )
            return False

        self._confirm(row_id, fields, entry["updated_at"])
        self._emit("success", message)
        return True

    def _confirm(
        self, row_id: str, fields: dict[str, Any], updated_at: datetime
    ) -> None:
        """Fold the written fields into the confirmed record."""
        self._confirmed = [
            item.model_copy(update={**fields, "updated_at": updated_at})
            if item.id == row_id
            else item
            for item in self._confirmed
        ]
        entry = self._overlay.get(row_id, {})
        for key, value in fields.items():
            if key in entry and entry[key] == value:
                del entry[key]
        if set(entry) <= {"updated_at"}:
            self._overlay.pop(row_id, None)

    def _emit(self, level: Literal["success", "error"], message: str) -> None:
        if level == "error":
            logger.warning(message)
        else:
            logger.info(message)
        if self._notify is not None:
            self._notify(Notice(level, message))

    # ------------------------------------------------------------------
    # Derived views, recomputed on every access

    @property
    def pending_entry_count(self) -> int:
        return sum(1 for item in self.items if not item.check)

    @property
    def pending_approval_count(self) -> int:
        return sum(
            1 for item in self.items if item.check and not item.representative_check
        )

    def unacknowledged_feedback_count(self, user: str) -> int:
        return len(self.feedback_inbox(user))

    def pending_entries(
        self,
        brand: BrandKey | str = BrandKey.ALL,
        mine_only: bool = False,
        user: str | None = None,
    ) -> list[AuctionItem]:
        """Records still waiting for entry, in row order.

        With ``mine_only`` only records assigned to ``user`` (default: the
        current user) are returned.
        """
        user = self.current_user if user is None else user
        return [
            item
            for item in self.items
            if not item.check
            and (not mine_only or item.assignee == user)
            and matches_brand(item.brand_name, brand)
        ]

    def pending_approvals(
        self,
        brand: BrandKey | str = BrandKey.ALL,
        sort: SortOrder | str = SortOrder.NONE,
    ) -> list[AuctionItem]:
        """Entered records the representative has not judged yet."""
        sort = SortOrder(sort)
        pending = [
            item
            for item in self.items
            if item.check
            and not item.representative_check
            and matches_brand(item.brand_name, brand)
        ]
        if sort is SortOrder.NONE:
            return pending
        return sorted(
            pending,
            key=lambda item: brand_sort_key(item.brand_name),
            reverse=sort is SortOrder.DESC,
        )

    def feedback_inbox(self, user: str) -> list[AuctionItem]:
        """Feedback addressed to ``user`` that has not been acknowledged."""
        if not user:
            return []
        return [
            item
            for item in self.items
            if item.assignee == user
            and item.feedback.strip()
            and not item.feedback_confirmed
        ]

    def entry_brand_counts(self) -> dict[BrandKey, int]:
        return brand_counts(item for item in self.items if not item.check)

    def approval_brand_counts(self) -> dict[BrandKey, int]:
        return brand_counts(self.pending_approvals())
