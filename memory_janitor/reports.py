# memory_janitor/reports.py

from __future__ import annotations

import html
from datetime import date

from .dedup.clustering import collect_candidate_ids
from .models import CleanupResult, DuplicateCluster, MemoryItem, ReviewAction

CONFIRM_TOKEN = "mdr_yes"
SKIP_TOKEN = "mdr_no"

PREVIEW_LIMIT = 5
NOTIFY_DELETIONS_LIMIT = 10


def pluralize(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def snippet(text: str, width: int) -> str:
    return text[:width].replace("\n", " ")


def build_report(result: CleanupResult) -> str:
    """Verbose operator report printed to the routine log."""
    lines: list[str] = []
    mode = " [DRY RUN]" if result.dry_run else ""

    lines.append(f"Memory Cleanup Report{mode}")
    lines.append("=" * 40)
    lines.append(f"Scanned:          {result.scanned}")
    lines.append(f"Duplicates found: {result.duplicates_found}")
    lines.append(f"Junk found:       {result.junk_found}")
    lines.append(f"Deleted:          {result.deleted}")
    lines.append(f"Skipped (cap):    {result.skipped}")
    if result.capped_at is not None:
        lines.append(f"Cap applied at:   {result.capped_at}")
    if result.store_errors:
        lines.append(f"Store errors:     {', '.join(result.store_errors)}")
    lines.append("")

    lines.append("By Type:")
    for item_type, stats in result.by_type.items():
        lines.append(
            f"  {item_type}: scanned={stats.scanned} dups={stats.duplicates_found} deleted={stats.deleted}"
        )
    lines.append("")

    if result.deletions:
        lines.append("Deletions:")
        for d in result.deletions:
            chat = d.chat_id if d.chat_id is not None else "null"
            if d.reason == "junk":
                lines.append(f"  [{d.type}] junk chat={chat}")
            else:
                lines.append(f"  [{d.type}] sim={d.similarity:.3f} chat={chat}")
                lines.append(f"    kept:    {snippet(d.kept_snippet, 60)}...")
            lines.append(f"    deleted: {snippet(d.deleted_snippet, 60)}...")
    else:
        lines.append("No duplicates or junk found - memory is clean.")

    lines.append("")
    lines.append("Demotion Pass:")
    lines.append(f"  Candidates (>30d old): {result.demotion_candidates}")
    lines.append(f"  Archived:              {result.demotion_archived}")
    lines.append(f"  Completed goals archived: {result.completed_goals_archived}")

    return "\n".join(lines)


def build_user_message(result: CleanupResult) -> str:
    """Short notification for the chat after the nightly cleanup."""
    mode = " (dry run)" if result.dry_run else ""
    lines: list[str] = [f"Memory Cleanup Complete{mode}", ""]

    lines.append(f"Scanned: {result.scanned} items")
    lines.append(f"Removed: {pluralize(result.deleted, 'item')}")
    if result.junk_found > 0:
        lines.append(f"Junk: {pluralize(result.junk_found, 'junk item')}")
    if result.duplicates_found > 0:
        lines.append(f"Duplicates: {pluralize(result.duplicates_found, 'near-duplicate')}")
    if result.skipped > 0:
        lines.append(f"Skipped: {result.skipped} (cap: {result.capped_at})")

    type_lines = [
        f"  {item_type}: {stats.deleted} removed"
        for item_type, stats in result.by_type.items()
        if stats.duplicates_found > 0
    ]
    if type_lines:
        lines.append("")
        lines.append("By type:")
        lines.extend(type_lines)

    shown = result.deletions[:NOTIFY_DELETIONS_LIMIT]
    if shown:
        lines.append("")
        lines.append("Removed:")
        for d in shown:
            tail = "(junk)" if d.reason == "junk" else f"(sim {d.similarity:.2f})"
            lines.append(f'  [{d.type}] "{snippet(d.deleted_snippet, 50)}..." {tail}')
        if len(result.deletions) > NOTIFY_DELETIONS_LIMIT:
            lines.append(f"  ... and {len(result.deletions) - NOTIFY_DELETIONS_LIMIT} more")

    if result.demotion_candidates > 0 or result.demotion_archived > 0:
        lines.append("")
        lines.append(
            f"Demotion: {result.demotion_archived} archived of {result.demotion_candidates} stale candidates"
        )

    if result.completed_goals_archived > 0:
        lines.append(f"Archived {pluralize(result.completed_goals_archived, 'completed goal')}")

    return "\n".join(lines)


def build_review_summary(junk_count: int, duplicate_count: int) -> str:
    parts: list[str] = []
    if junk_count > 0:
        parts.append(f"{junk_count} junk")
    if duplicate_count > 0:
        parts.append(f"{duplicate_count} near-duplicates")
    return ", ".join(parts)


def build_confirmation_message(
    junk: list[MemoryItem],
    clusters: list[DuplicateCluster],
    today: date | None = None,
) -> str:
    """
    Weekly review body (Telegram HTML). The confirm/skip buttons are
    attached at send time.
    """
    total = len(collect_candidate_ids(junk, clusters))
    today = today or date.today()
    lines: list[str] = [
        f"🧹 <b>Weekly Memory Review</b> - {today.strftime('%A, %d %b %Y')}",
        "",
    ]

    if total == 0:
        lines.append("✅ Memory is clean - nothing to remove.")
        return "\n".join(lines)

    parts: list[str] = []
    if junk:
        parts.append(pluralize(len(junk), "junk item"))
    dup_count = sum(len(c.duplicates) for c in clusters)
    if dup_count > 0:
        parts.append(pluralize(dup_count, "near-duplicate"))

    lines.append(f"Found <b>{pluralize(total, 'item')}</b> to clean up: {', '.join(parts)}")
    lines.append("")

    if junk:
        lines.append("<b>Junk items:</b>")
        for item in junk[:PREVIEW_LIMIT]:
            lines.append(f'  [{item.type}] "{html.escape(snippet(item.content, 60))}"')
        if len(junk) > PREVIEW_LIMIT:
            lines.append(f"  … and {len(junk) - PREVIEW_LIMIT} more")
        lines.append("")

    if clusters:
        lines.append("<b>Near-duplicates</b> (keeping older item):")
        for cluster in clusters[:PREVIEW_LIMIT]:
            keeper = html.escape(snippet(cluster.keeper.text, 40))
            for member in cluster.duplicates[:2]:
                dup = html.escape(snippet(member.item.text, 40))
                lines.append(f'  "<i>{dup}</i>" → dup of "{keeper}" (sim {member.similarity:.2f})')
        if len(clusters) > PREVIEW_LIMIT:
            lines.append(f"  … and {len(clusters) - PREVIEW_LIMIT} more clusters")
        lines.append("")

    lines.append(
        f"Tap <b>Confirm</b> to delete all {pluralize(total, 'item')}, or <b>Skip</b> to leave memory unchanged."
    )
    return "\n".join(lines)


def build_review_actions(count: int) -> list[ReviewAction]:
    return [
        ReviewAction(label=f"Confirm Delete ({pluralize(count, 'item')})", token=CONFIRM_TOKEN),
        ReviewAction(label="Skip", token=SKIP_TOKEN),
    ]


def build_failure_message(routine: str, error: BaseException) -> str:
    return f"⚠️ {routine} failed: {html.escape(str(error))[:200]}"
