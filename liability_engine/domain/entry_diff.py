# liability_engine/domain/entry_diff.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class EntrySnapshot:
    id: int
    inspection_id: int
    section_ref: str
    item_ref: Optional[str]
    field_key: str
    value: Any
    note: Optional[str]
    photos: tuple[str, ...]
    maintenance_flag: bool
    marked_for_review: bool

    @property
    def match_key(self) -> tuple[str, str, str]:
        return (
            self.section_ref.strip().lower(),
            (self.item_ref or "").strip().lower(),
            self.field_key.strip().lower(),
        )


@dataclass(frozen=True)
class ItemDraft:
    section_ref: str
    item_ref: Optional[str]
    field_key: str
    check_in_entry_id: Optional[int]
    check_out_entry_id: int
    comparison_data: dict[str, Any]


def _norm_note(s: Optional[str]) -> str:
    return " ".join((s or "").split()).lower()


def entries_differ(check_in: EntrySnapshot, check_out: EntrySnapshot) -> bool:
    if check_in.value != check_out.value:
        return True
    if _norm_note(check_in.note) != _norm_note(check_out.note):
        return True
    return set(check_in.photos) != set(check_out.photos)


def needs_review(check_in: Optional[EntrySnapshot], check_out: EntrySnapshot) -> bool:
    """
    A check-out entry becomes a comparison item when the clerk flagged it,
    when there is no check-in counterpart, or when the two phases differ.
    """
    if check_out.marked_for_review or check_out.maintenance_flag:
        return True
    if check_in is None:
        return True
    return entries_differ(check_in, check_out)


def diff_entries(check_in_entries: Iterable[EntrySnapshot], check_out_entries: Iterable[EntrySnapshot]) -> list[ItemDraft]:
    """
    Match check-out entries to check-in entries on (section, item, field) and
    return one draft per entry that needs review, in check-out order.
    Duplicate keys on the check-in side keep the first entry.
    """
    by_key: dict[tuple[str, str, str], EntrySnapshot] = {}
    for e in check_in_entries:
        by_key.setdefault(e.match_key, e)

    drafts: list[ItemDraft] = []
    for out in check_out_entries:
        cin = by_key.get(out.match_key)
        if not needs_review(cin, out):
            continue
        drafts.append(
            ItemDraft(
                section_ref=out.section_ref,
                item_ref=out.item_ref,
                field_key=out.field_key,
                check_in_entry_id=cin.id if cin else None,
                check_out_entry_id=out.id,
                comparison_data={
                    "check_in_photos": list(cin.photos) if cin else [],
                    "check_out_photos": list(out.photos),
                    "check_in_note": cin.note if cin else None,
                    "check_out_note": out.note,
                },
            )
        )
    return drafts
