"""Consensus feature set from several selection sets.

A feature enters the consensus when at least ``min_votes`` selectors chose
it. Only usable selections (a selector that succeeded with a non-empty set)
count toward the number of voters.

Degradation rule when selectors fail or return nothing:
- If fewer usable sets than ``min_votes`` remain and ``allow_reduced`` is
  set, the threshold drops to the number of usable sets (one usable set means
  its features are taken as-is).
- ``reduced_confidence`` is raised whenever fewer than two sets are usable or
  the threshold was lowered.
- With no usable set, or an empty consensus, NoConsensusFeaturesError is
  raised with the per-selector set sizes as diagnostics.

Ordering: votes descending, then the input feature column order (or
alphabetical when no order is supplied). Votes are aggregated by feature id,
never by the order in which selectors finished.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

import pandas as pd

from amp_ml.exceptions import NoConsensusFeaturesError
from amp_ml.features.base import SelectionSet, SelectorResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsensusResult:
    """Consensus feature set and how it was reached.

    Attributes:
        features: Consensus feature ids (votes desc, then column order)
        votes: Vote count per consensus feature
        n_selectors: Number of selection sets considered (incl. failed/empty)
        n_usable: Number of non-empty selection sets
        min_votes: Configured vote threshold
        effective_min_votes: Threshold actually applied
        reduced_confidence: True when the run degraded below the configured rule
        selection_sizes: Size of each selector's set (0 for failed selectors)
    """

    features: tuple[str, ...]
    votes: tuple[int, ...]
    n_selectors: int
    n_usable: int
    min_votes: int
    effective_min_votes: int
    reduced_confidence: bool
    selection_sizes: dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.features)

    def __contains__(self, feature: object) -> bool:
        return feature in self.features

    def to_dict(self) -> dict:
        return {
            "features": list(self.features),
            "votes": list(self.votes),
            "n_selectors": self.n_selectors,
            "n_usable": self.n_usable,
            "min_votes": self.min_votes,
            "effective_min_votes": self.effective_min_votes,
            "reduced_confidence": self.reduced_confidence,
            "selection_sizes": dict(self.selection_sizes),
        }


def _as_feature_tuple(selection) -> tuple[str, ...]:
    if isinstance(selection, SelectorResult):
        return selection.selection.features if selection.succeeded else ()
    if isinstance(selection, SelectionSet):
        return selection.features
    return tuple(selection)


def aggregate_consensus(
    selections: Mapping[str, SelectionSet | SelectorResult | Iterable[str]],
    min_votes: int = 2,
    allow_reduced: bool = True,
    feature_order: Sequence[str] | None = None,
    failed: Iterable[str] = (),
) -> ConsensusResult:
    """
    Merge selection sets into a consensus feature set.

    Args:
        selections: Selector name -> SelectionSet, SelectorResult or iterable of feature ids
        min_votes: Number of sets a feature must appear in
        allow_reduced: Lower the threshold to the number of usable sets when
            fewer than ``min_votes`` remain
        feature_order: Column order for tie-breaking (default: alphabetical)
        failed: Names of selectors that failed (reported in diagnostics)

    Returns:
        ConsensusResult

    Raises:
        ValueError: If min_votes < 1
        NoConsensusFeaturesError: No usable set, or no feature reaches the threshold
    """
    if min_votes < 1:
        raise ValueError(f"min_votes must be >= 1, got {min_votes}")

    failed = set(failed)
    failed.update(
        name for name, s in selections.items() if isinstance(s, SelectorResult) and not s.succeeded
    )

    sets = {name: set(_as_feature_tuple(s)) for name, s in selections.items()}
    sizes = {name: len(s) for name, s in sets.items()}
    n_usable = sum(1 for s in sets.values() if s)

    diagnostics = {
        "selection_sizes": sizes,
        "failed_selectors": sorted(failed),
        "min_votes": min_votes,
        "n_usable": n_usable,
    }

    if n_usable == 0:
        raise NoConsensusFeaturesError(
            "No selector produced a usable selection set", diagnostics=diagnostics
        )

    effective = min_votes
    if n_usable < min_votes and allow_reduced:
        effective = n_usable
        logger.warning(
            f"Only {n_usable} usable selection set(s); lowering consensus threshold "
            f"from {min_votes} to {effective} (reduced confidence)"
        )
    reduced = n_usable < 2 or effective < min_votes
    diagnostics["effective_min_votes"] = effective

    votes: dict[str, int] = {}
    for features in sets.values():
        for feature in features:
            votes[feature] = votes.get(feature, 0) + 1

    if feature_order is not None:
        position = {f: i for i, f in enumerate(feature_order)}
        missing = sorted(f for f in votes if f not in position)
        if missing:
            raise ValueError(f"Selected features not in feature_order: {missing[:10]}")
        tie_key = position.__getitem__
    else:
        tie_key = None

    chosen = [f for f, v in votes.items() if v >= effective]
    if tie_key is None:
        chosen.sort(key=lambda f: (-votes[f], f))
    else:
        chosen.sort(key=lambda f: (-votes[f], tie_key(f)))

    if not chosen:
        raise NoConsensusFeaturesError(
            f"No feature selected by at least {effective} of {len(sets)} selectors",
            diagnostics={**diagnostics, "union_size": len(votes)},
        )

    if reduced:
        logger.warning(f"Consensus built from {n_usable} usable set(s): reduced-confidence run")
    logger.info(
        f"Consensus: {len(chosen)} features (>= {effective} votes) from union of {len(votes)}"
    )

    return ConsensusResult(
        features=tuple(chosen),
        votes=tuple(votes[f] for f in chosen),
        n_selectors=len(sets),
        n_usable=n_usable,
        min_votes=min_votes,
        effective_min_votes=effective,
        reduced_confidence=reduced,
        selection_sizes=sizes,
    )


def consensus_membership_table(
    selections: Mapping[str, SelectionSet | SelectorResult | Iterable[str]],
    consensus: ConsensusResult,
) -> pd.DataFrame:
    """
    Feature x selector membership for every feature in the union of the sets.

    Returns:
        DataFrame with columns [feature, <selector>..., votes, in_consensus],
        consensus features first (in consensus order), then the rest by votes
        desc and feature id.
    """
    sets = {name: set(_as_feature_tuple(s)) for name, s in selections.items()}
    union = set().union(*sets.values()) if sets else set()

    in_consensus = list(consensus.features)
    rest = sorted(union - set(in_consensus))

    rows = []
    for feature in in_consensus + rest:
        row = {"feature": feature}
        for name, members in sets.items():
            row[name] = feature in members
        row["votes"] = sum(feature in members for members in sets.values())
        row["in_consensus"] = feature in consensus
        rows.append(row)

    columns = ["feature", *sets.keys(), "votes", "in_consensus"]
    df = pd.DataFrame(rows, columns=columns)
    if rest:
        head = df.iloc[: len(in_consensus)]
        tail = df.iloc[len(in_consensus) :].sort_values(
            ["votes", "feature"], ascending=[False, True], kind="mergesort"
        )
        df = pd.concat([head, tail], ignore_index=True)
    return df
