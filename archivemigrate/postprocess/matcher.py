#  This file is part of ArchiveMigrate.
#  ArchiveMigrate is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#  ArchiveMigrate is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#  You should have received a copy of the GNU General Public License
#  along with ArchiveMigrate.  If not, see <http://www.gnu.org/licenses/>.

"""
Catalog matching for ArchiveMigrate.

Assigns a catalog id to a raw file name using an inverted index of Latin
tokens and CJK bigrams built from every catalog title and alias. The best
scoring id must then be confirmed by substring containment, or by enough
independent signal, before it is accepted.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from fuzzywuzzy import fuzz

import archivemigrate
from archivemigrate import logger
from archivemigrate.models import CatalogEntry
from archivemigrate.postprocess.normalizer import (
    extract_cjk_bigrams,
    extract_latin_tokens,
    has_cjk,
    normalize,
)

TOKEN_WEIGHT = 1
BIGRAM_WEIGHT = 2
MIN_NOSPACE_CANDIDATE = 3
CJK_SIGNAL_SCORE = 6
LATIN_SIGNAL_SCORE = 3


@dataclass
class MatchIndex:
    """Read-only lookup tables built once per run.

    Id lists keep first-seen order, which makes score ties deterministic.
    """
    token_index: Dict[str, List[int]] = field(default_factory=dict)
    cjk_bigram_index: Dict[str, List[int]] = field(default_factory=dict)
    candidate_strings: Dict[int, List[str]] = field(default_factory=dict)


def _add(mapping: Dict[str, List[int]], key: str, entry_id: int) -> None:
    ids = mapping.setdefault(key, [])
    if entry_id not in ids:
        ids.append(entry_id)


def entry_candidates(entry: CatalogEntry) -> List[str]:
    """Normalised, de-duplicated titles and aliases of an entry."""
    raw = [t for t in entry.title_variants if t] + sorted(entry.aliases)
    normalized = [normalize(t) for t in raw]
    return list(dict.fromkeys(n for n in normalized if n))


def build_index(entries: Iterable[CatalogEntry]) -> MatchIndex:
    """Build the token, bigram and candidate tables.

    Entries without a usable title are left out. Entries sharing an id
    pool their candidates.
    """
    index = MatchIndex()
    for entry in entries:
        candidates = entry_candidates(entry)
        if not candidates:
            continue
        existing = index.candidate_strings.setdefault(entry.id, [])
        for cand in candidates:
            if cand not in existing:
                existing.append(cand)
            for token in extract_latin_tokens(cand):
                _add(index.token_index, token, entry.id)
            if has_cjk(cand):
                for bigram in extract_cjk_bigrams(cand):
                    _add(index.cjk_bigram_index, bigram, entry.id)
    return index


def _score(tokens: List[str], bigrams: List[str],
           index: MatchIndex) -> Tuple[Dict[int, int], Dict[int, int]]:
    """Score every id hit by a token or bigram.

    Returns the total score per id and the bigram part of it.
    """
    scores = {}  # type: Dict[int, int]
    bigram_scores = {}  # type: Dict[int, int]
    for token in tokens:
        for entry_id in index.token_index.get(token, ()):
            scores[entry_id] = scores.get(entry_id, 0) + TOKEN_WEIGHT
    for bigram in bigrams:
        for entry_id in index.cjk_bigram_index.get(bigram, ()):
            scores[entry_id] = scores.get(entry_id, 0) + BIGRAM_WEIGHT
            bigram_scores[entry_id] = bigram_scores.get(entry_id, 0) + BIGRAM_WEIGHT
    return scores, bigram_scores


def _confirmed(name: str, candidates: List[str]) -> bool:
    name_nospace = ''.join(name.split())
    for cand in candidates:
        if cand in name:
            return True
        cand_nospace = ''.join(cand.split())
        if len(cand_nospace) >= MIN_NOSPACE_CANDIDATE and cand_nospace in name_nospace:
            return True
    return False


def choose_best_match(filename: str, index: MatchIndex) -> Optional[int]:
    """Pick the catalog id for a file name, or None if nothing convincing."""
    name = normalize(filename)
    tokens = extract_latin_tokens(name)
    bigrams = extract_cjk_bigrams(name)

    scores, bigram_scores = _score(tokens, bigrams, index)
    if not scores:
        return None

    best_id = None
    best_score = -1
    for entry_id, score in scores.items():
        if score > best_score:
            best_id, best_score = entry_id, score

    candidates = index.candidate_strings.get(best_id)
    if not candidates:
        return None

    if archivemigrate.LOGLEVEL & archivemigrate.log_fuzz:
        logger.debug("Match %s: best id %s score %d (bigram %d) from %d ids" %
                     (filename, best_id, best_score, bigram_scores.get(best_id, 0), len(scores)))

    if _confirmed(name, candidates):
        return best_id

    bigram_score = bigram_scores.get(best_id, 0)
    if bigram_score and best_score >= CJK_SIGNAL_SCORE:
        return best_id
    if best_score > bigram_score and best_score >= LATIN_SIGNAL_SCORE:
        return best_id
    return None


class GameMatcher:
    """Index plus the catalog it was built from.

    Wraps the module functions for callers that also want fuzzy diagnostics
    for names the index could not place.
    """

    def __init__(self, entries: Iterable[CatalogEntry]):
        self.entries = list(entries)
        self.index = build_index(self.entries)

    def match(self, filename: str) -> Optional[int]:
        return choose_best_match(filename, self.index)

    def get_match_candidates(self, filename: str, limit: int = 3) -> List[Tuple[int, str, int]]:
        """Nearest catalog titles by partial ratio.

        Only used to explain a miss in the logs; never used to assign ids.

        Args:
            filename: Raw file name
            limit: Maximum number of candidates to return

        Returns:
            List of (id, candidate, ratio) tuples, best first
        """
        name = normalize(filename)
        if not name:
            return []
        scored = []
        for entry_id, candidates in self.index.candidate_strings.items():
            best = max(candidates, key=lambda c: fuzz.partial_ratio(name, c))
            scored.append((entry_id, best, fuzz.partial_ratio(name, best)))
        scored.sort(key=lambda x: x[2], reverse=True)
        return scored[:limit]
