# tally computation + submission guard (pure, no I/O)
import logging
from typing import Dict, Iterable, Optional, Sequence

from .models import Option, TallySnapshot, VoteRecord
from .palette import OPTIONS

logger = logging.getLogger(__name__)


def percentage(count: int, total: int) -> int:
    """
    Share of total as a whole percent, rounding halves up (12.5 -> 13).
    0 when there are no votes at all.
    """
    if total <= 0:
        return 0
    # floor(count * 100 / total + 0.5) in integer arithmetic
    return (200 * count + total) // (2 * total)


def compute(records: Iterable[VoteRecord], options: Sequence[Option] = OPTIONS) -> TallySnapshot:
    """
    Aggregate vote records into per-option counts, percentages and a leader.
    Records naming an option outside `options` are skipped, never raised.
    """
    counts: Dict[str, int] = {opt.name: 0 for opt in options}
    skipped = 0
    for rec in records:
        if rec.option_name not in counts:
            skipped += 1
            continue
        counts[rec.option_name] += 1

    if skipped:
        logger.debug("tally skipped %d record(s) with unknown option", skipped)

    total = sum(counts.values())

    # strict > keeps the first option in palette order on ties
    leader: Optional[str] = None
    if total > 0:
        best = -1
        for opt in options:
            if counts[opt.name] > best:
                leader, best = opt.name, counts[opt.name]

    return TallySnapshot(
        counts_by_option=counts,
        percentages={name: percentage(c, total) for name, c in counts.items()},
        total_votes=total,
        leader=leader,
    )


def can_vote(has_voted: bool) -> bool:
    """
    Local-session guard. Does nothing against a second session or device.
    """
    return not has_voted
