from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from poolmatch import polyline_codec
from poolmatch.Location import Location, Path
from poolmatch.Match import CandidateEvaluation, DetourResult, MatchCandidate, MatchOutcome, MatchPolicy
from poolmatch.Trip import Request, RequestStatus, Trip
from poolmatch.detour import DetourEvaluator
from poolmatch.errors import RoutingProviderError
from poolmatch.route_matcher import find_candidates

logger = logging.getLogger(__name__)


class MatchCoordinator:
    def __init__(self, evaluator: DetourEvaluator):
        self.evaluator = evaluator

    def _scoreable(self, candidates: List[MatchCandidate], trips: Dict[str, Trip]) -> List[MatchCandidate]:
        out = []
        for c in candidates:
            if c.inverted:
                continue
            trip = trips[c.trip_id]
            if trip.start == trip.end:
                logger.debug("skipping degenerate trip %s", trip.id)
                continue
            out.append(c)
        return out

    def match(self, request: Request, trips: Iterable[Trip], policy: MatchPolicy) -> MatchOutcome:
        trips = list(trips)
        found = find_candidates(request, trips, policy.max_distance_meters, include_inversions=True)
        inversions = [c for c in found if c.inverted]
        matches = found if policy.include_inversions else [c for c in found if not c.inverted]
        if not matches:
            logger.info("request %s: no candidates among %d trips (%d inverted)",
                        request.id, len(trips), len(inversions))
            return MatchOutcome(request_id=request.id, inversions=inversions)

        by_id = {t.id: t for t in trips}
        to_score = self._scoreable(matches, by_id)[:policy.evaluate_top]

        evaluations: List[CandidateEvaluation] = []
        for c in to_score:
            trip = by_id[c.trip_id]
            if policy.evaluate_top == 1:
                # single-candidate flow: a provider failure is a failed attempt
                detour = self.evaluator.evaluate(trip, request)
                evaluations.append(CandidateEvaluation(candidate=c, detour=detour))
                continue
            try:
                detour = self.evaluator.evaluate(trip, request)
            except RoutingProviderError as e:
                logger.info("request %s: trip %s kept as geometric match, detour unknown (%s)",
                            request.id, trip.id, e.reason.value)
                evaluations.append(CandidateEvaluation(candidate=c, error=e.reason))
                continue
            evaluations.append(CandidateEvaluation(candidate=c, detour=detour))

        best = self._pick_best(evaluations, policy)
        logger.info("request %s: %d candidates, %d scored, best trip %s", request.id, len(matches),
                    len(evaluations), best[0].trip_id if best else None)
        return MatchOutcome(request_id=request.id, matches=matches, best=best, evaluations=evaluations,
                            inversions=inversions)

    @staticmethod
    def _pick_best(evaluations: List[CandidateEvaluation],
                   policy: MatchPolicy) -> Optional[Tuple[MatchCandidate, DetourResult]]:
        best: Optional[CandidateEvaluation] = None
        for e in evaluations:
            if e.detour is None:
                continue
            if e.detour.detour_percentage > policy.max_detour_percentage:
                logger.debug("trip %s rejected: detour %.2f%% > %.2f%%", e.candidate.trip_id,
                             e.detour.detour_percentage, policy.max_detour_percentage)
                continue
            if best is None or e.detour.detour_percentage < best.detour.detour_percentage:
                best = e
        if best is None:
            return None
        return best.candidate, best.detour


def evaluate_match(request: Request, trips: Iterable[Trip], policy: MatchPolicy,
                   evaluator: DetourEvaluator) -> MatchOutcome:
    return MatchCoordinator(evaluator).match(request, trips, policy)


def apply_outcome(request: Request, outcome: MatchOutcome) -> Request:
    if outcome.matched and request.status is not RequestStatus.MATCHED:
        return request.with_status(RequestStatus.MATCHED)
    return request


def encode_path(path: Iterable[Location]) -> str:
    return polyline_codec.encode(list(path))


def decode_path(s: str) -> Path:
    return polyline_codec.decode(s)
