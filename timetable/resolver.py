"""Concurrent resolution of subject display data.

Lookups (typically network-bound) run concurrently, while their results
are applied one at a time on the event loop thread, which keeps the
schedule single-writer.
"""

import asyncio
import inspect
import logging
import typing as t
from dataclasses import dataclass

from .models import Subject, SubjectClass
from .provider import ScheduleProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Display data found for a subject."""

    display_name: str
    subject_class: t.Optional[SubjectClass] = None


Lookup = t.Callable[[Subject], t.Union[t.Optional[Resolution], t.Awaitable[t.Optional[Resolution]]]]


async def resolve_schedule(
    provider: ScheduleProvider,
    lookup: Lookup,
    progress_callback: t.Optional[t.Callable[[int, int], None]] = None,
    max_concurrent: t.Optional[int] = None
) -> int:
    """Resolve every unresolved subject of a schedule.

    Results are applied in completion order, so ``progress_callback`` sees
    the schedule fill in as lookups finish.

    Args:
        provider: Schedule to resolve.
        lookup: Callable returning a :class:`Resolution` (or None when
            nothing is known) for a subject. May be sync or async; sync
            lookups run in a worker thread.
        progress_callback: Optional callback called with
            (loaded_subjects, total_subjects) after each applied result.
        max_concurrent: Optional limit on concurrent lookups.

    Returns:
        Number of subjects resolved by this call.
    """
    pending = [subject for subject in list(provider.subjects) if not subject.is_resolved]
    if not pending:
        return 0

    semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None
    tasks = [
        asyncio.create_task(_lookup_subject(subject, lookup, semaphore))
        for subject in pending
    ]

    resolved = 0
    for finished in asyncio.as_completed(tasks):
        subject_id, resolution = await finished
        if resolution is None:
            continue

        if provider.resolve_subject(subject_id, resolution.display_name, resolution.subject_class):
            resolved += 1
            if progress_callback:
                progress_callback(provider.loaded_subjects, len(provider.subjects))

    logger.info("Resolved %d of %d pending subjects", resolved, len(pending))
    return resolved


async def _lookup_subject(
    subject: Subject,
    lookup: Lookup,
    semaphore: t.Optional[asyncio.Semaphore]
) -> tuple[str, t.Optional[Resolution]]:
    """Run one lookup, reporting failures as "nothing found"."""
    if semaphore:
        await semaphore.acquire()

    try:
        if inspect.iscoroutinefunction(lookup):
            result = await lookup(subject)
        else:
            result = await asyncio.to_thread(lookup, subject)
            # partials and callable objects wrapping coroutines land here
            if inspect.isawaitable(result):
                result = await result
        return subject.id, result
    except Exception:
        # The subject stays unresolved and shows up in the load progress
        logger.exception("Lookup failed for subject '%s'", subject.raw_name)
        return subject.id, None
    finally:
        if semaphore:
            semaphore.release()


def catalog_lookup(classes: t.Iterable[SubjectClass]) -> t.Callable[[Subject], Resolution]:
    """Build a lookup matching raw names to known classes by name.

    Matching ignores case and surrounding whitespace. Unknown names resolve
    to their cleaned-up raw name without a class.
    """
    catalog = {subject_class.name.strip().lower(): subject_class for subject_class in classes}

    def lookup(subject: Subject) -> Resolution:
        name = subject.raw_name.strip()
        subject_class = catalog.get(name.lower())
        if subject_class is None:
            return Resolution(display_name=name)
        return Resolution(display_name=subject_class.name, subject_class=subject_class)

    return lookup
