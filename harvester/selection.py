"""
Source selection engine.

Reduces a completed LinkPool to a bounded, deterministically ordered list
of sources:

1. pick up to N primary servers in output-priority order,
2. fill each primary server's target qualities directly,
3. patch missing (server, quality) slots from other servers,
4. sort the result by server rank then quality rank.

When no known server made it into the pool the whole pool is returned in
priority order instead ("best available" mode).
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from harvester.config import SelectionConfig
from harvester.links import LinkPool, link_sort_key, quality_rank
from harvester.models import CandidateLink


Slot = Tuple[str, str]


@dataclass
class Selection:
    """Result of running the selection policy over one pool."""
    links: List[CandidateLink] = field(default_factory=list)
    primary_servers: List[str] = field(default_factory=list)
    missing_slots: List[Slot] = field(default_factory=list)
    unfilled_slots: List[Slot] = field(default_factory=list)
    best_available: bool = False


class SourceSelector:
    """Applies the primary-server and slot-patching policy to a LinkPool."""

    def __init__(self, config: Optional[SelectionConfig] = None):
        self.config = config or SelectionConfig()

    def select(self, pool: LinkPool) -> Selection:
        """
        Select output sources for one episode.

        Args:
            pool: Link pool built during extraction

        Returns:
            Selection with the ordered output links and bookkeeping
        """
        selection = Selection()
        if not pool:
            return selection

        selection.primary_servers = self._pick_primary_servers(pool)
        if not selection.primary_servers:
            selection.best_available = True
            selection.links = pool.flatten()
            return selection

        occupied: Set[Slot] = set()
        output: List[CandidateLink] = []

        # Direct fill
        for server in selection.primary_servers:
            for quality in self.config.target_qualities:
                link = pool.get(server, quality)
                if link:
                    output.append(link)
                    occupied.add((server, quality))
                else:
                    selection.missing_slots.append((server, quality))

        # Patching, best quality first (sort is stable so server order holds)
        for slot in sorted(selection.missing_slots, key=lambda s: quality_rank(s[1])):
            patch = self._find_patch(pool, slot, selection.primary_servers, occupied)
            if patch is None:
                selection.unfilled_slots.append(slot)
                continue
            output.append(patch)
            occupied.add((patch.server, patch.quality))

        selection.links = sorted(output, key=link_sort_key)
        return selection

    def _pick_primary_servers(self, pool: LinkPool) -> List[str]:
        primaries = []
        for server in self.config.server_order:
            if len(primaries) >= self.config.primary_server_count:
                break
            if pool.has_server(server):
                primaries.append(server)
        return primaries

    def _find_patch(
        self,
        pool: LinkPool,
        slot: Slot,
        primary_servers: List[str],
        occupied: Set[Slot]
    ) -> Optional[CandidateLink]:
        """
        Find an unused entry of the slot's quality on another server.

        Non-primary servers are swept first; the second sweep allows the
        remaining primary servers.
        """
        target_server, quality = slot
        candidates = [s for s in self.config.server_order if s != target_server]
        sweeps = (
            [s for s in candidates if s not in primary_servers],
            [s for s in candidates if s in primary_servers],
        )
        for sweep in sweeps:
            for server in sweep:
                if (server, quality) in occupied:
                    continue
                link = pool.get(server, quality)
                if link:
                    return link
        return None


def select_sources(pool: LinkPool, config: Optional[SelectionConfig] = None) -> List[CandidateLink]:
    """Convenience wrapper returning only the ordered output links."""
    return SourceSelector(config).select(pool).links
