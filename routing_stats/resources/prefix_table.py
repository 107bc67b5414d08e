"""
Longest-prefix-match table

A thin layer over a py-radix tree. Every radix node carries the prefix it
stands for and the values attached to it. Values on the same prefix are
sorted at freeze time and the full (prefix, value) listing is computed
once, so every result is independent of insertion order.
"""

from typing import Callable, Generic, Iterator, List, Optional, Tuple, TypeVar

import radix

from routing_stats.resources.ip import Prefix
from routing_stats.utils.error_handling import IndexBuildFailure

V = TypeVar('V')


def _node_order(node) -> Tuple[int, int]:
    prefix = node.data['prefix']
    return (prefix.length, prefix.value)


class PrefixTable(Generic[V]):
    """
    Map prefixes to values and answer covering / covered-by queries

    The table is filled with insert() and then frozen; queries are only
    allowed on a frozen table and inserts only on an unfrozen one.
    """

    def __init__(self, sort_key: Optional[Callable[[V], object]] = None):
        self._sort_key = sort_key
        self._tree = radix.Radix()
        self._items: List[Tuple[Prefix, V]] = []
        self._frozen = False
        self._count = 0

    def insert(self, prefix: Prefix, value: V):
        if self._frozen:
            raise IndexBuildFailure("Cannot insert into a frozen prefix table")
        network = str(prefix)
        node = self._tree.search_exact(network)
        if node is None:
            node = self._tree.add(network)
            node.data['prefix'] = prefix
            node.data['values'] = []
        node.data['values'].append(value)
        self._count += 1

    def freeze(self) -> 'PrefixTable[V]':
        """Sort the values of every node and list all entries in prefix order"""
        if self._frozen:
            return self

        entries = []
        for node in self._tree.nodes():
            values = node.data['values']
            if self._sort_key is not None:
                values = sorted(values, key=self._sort_key)
            node.data['values'] = tuple(values)
            entries.append((node.data['prefix'], node.data['values']))

        entries.sort(key=lambda entry: entry[0])
        self._items = [(prefix, value) for prefix, values in entries for value in values]
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _require_frozen(self):
        if not self._frozen:
            raise IndexBuildFailure("Prefix table must be frozen before it is queried")

    def covering(self, prefix: Prefix) -> Iterator[V]:
        """Values on prefixes equal to or less specific than prefix, most specific first"""
        self._require_frozen()
        nodes = self._tree.search_covering(str(prefix))
        nodes.sort(key=lambda node: node.prefixlen, reverse=True)
        for node in nodes:
            yield from node.data['values']

    def most_specific(self, prefix: Prefix) -> Optional[V]:
        self._require_frozen()
        node = self._tree.search_best(str(prefix))
        if node is None:
            return None
        return node.data['values'][0]

    def covered_by(self, prefix: Prefix, max_length: Optional[int] = None) -> Iterator[V]:
        """
        Values on prefixes equal to or more specific than prefix, by length then address

        max_length, when given, skips prefixes longer than it.
        """
        self._require_frozen()
        nodes = self._tree.search_covered(str(prefix))
        if max_length is not None:
            nodes = [node for node in nodes if node.prefixlen <= max_length]
        nodes.sort(key=_node_order)
        for node in nodes:
            yield from node.data['values']

    def intersecting(self, prefix: Prefix) -> Iterator[V]:
        """Values on prefixes that overlap prefix in either direction"""
        yield from self.covering(prefix)
        nodes = [node for node in self._tree.search_covered(str(prefix))
                 if node.prefixlen > prefix.length]
        nodes.sort(key=_node_order)
        for node in nodes:
            yield from node.data['values']

    def items(self) -> Iterator[Tuple[Prefix, V]]:
        """All (prefix, value) pairs ordered by prefix, then by the sort key"""
        self._require_frozen()
        return iter(self._items)

    def values(self) -> Iterator[V]:
        self._require_frozen()
        return (value for _, value in self._items)

    def __len__(self):
        return self._count
