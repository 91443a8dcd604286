### RaptorEngine internal types - lines and round labels

import itertools as it, operator as op, functools as ft
from collections import namedtuple
import bisect

from .. import utils as u


class Line:
	'''Line - group of trips of the same route with identical stop sequences,
			ordered from earliest-to-latest by arrival/departure time on ALL stops.
		If one trip overtakes another (making
			such strict ordering impossible), trips should be split into different lines.'''

	def __init__(self, route_id, *trips):
		self.route_id, self.set_idx = route_id, list(trips)
		self.id = self.idx = self._dts_dep_idx = self._stops = None

	def __repr__(self): return '<Line {}>'.format(self.id)

	@property
	def stops(self):
		'Sequence of Stops for all of the Trips on this Line.'
		if self._stops is not None: return self._stops
		return list(map(op.attrgetter('stop'), self.set_idx[0].stops))

	def add(self, *trips):
		assert self._dts_dep_idx is None, 'Changing Line after it was finalized.'
		self.set_idx.extend(trips)

	def finalize(self, line_id, idx):
		self.id, self.idx = line_id, idx
		self._stops = self.stops
		# Trips here never overtake, so ordering by all stop times keeps every column sorted
		self.set_idx.sort(key=lambda trip: (
			tuple((ts.dts_dep, ts.dts_arr) for ts in trip), trip.id ))
		self._dts_dep_idx = list(
			list(trip[stopidx].dts_dep for trip in self.set_idx)
			for stopidx in range(len(self.set_idx[0])) )

	def earliest_trip(self, stopidx, dts=0):
		'Earliest trip departing from stopidx at or after dts, or None if all have departed.'
		n = bisect.bisect_left(self._dts_dep_idx[stopidx], dts)
		if n < len(self.set_idx): return self.set_idx[n]

	def __getitem__(self, k): return self.set_idx[k]
	def __hash__(self): return hash(self.id)
	def __eq__(self, line): return u.same_type_and_id(self, line)
	def __len__(self): return len(self.set_idx)
	def __iter__(self): return iter(self.set_idx)


class Lines:

	def __init__(self):
		self.idx_stop, self.idx_route, self.lines = dict(), dict(), list()

	def add(self, *lines):
		for line in lines:
			route_lines = self.idx_route.setdefault(line.route_id, list())
			line_id = line.route_id if not route_lines else '{}.{}'.format(line.route_id, len(route_lines))
			line.finalize(line_id, len(self.lines))
			for stopidx, stop in enumerate(line.stops):
				self.idx_stop.setdefault(stop, list()).append((stopidx, line))
			route_lines.append(line)
			self.lines.append(line)

	def lines_with_stop(self, stop):
		'All lines going through stop as (stopidx, line) tuples.'
		return self.idx_stop.get(stop, list())

	def lines_for_route(self, route_id): return self.idx_route.get(route_id, list())

	def __getitem__(self, idx): return self.lines[idx]
	def __iter__(self): return iter(self.lines)
	def __len__(self): return len(self.lines)



### Labels

# Edges that produce a label, used as parent-links for path reconstruction
LabelTrip = namedtuple('LTrip', 'ts_from ts_to')
LabelFp = namedtuple('LFootpath', 'stop_from stop_to delta')

@u.attr_struct(repr=False, eq=False)
class Label:
	'''Earliest known arrival at stop, found in round n.
		Origin label has no edge or prev, all others link to the label they were derived from.'''
	stop = u.attr_init()
	dts_arr = u.attr_init()
	n = u.attr_init()
	edge = u.attr_init(None)
	prev = u.attr_init(None)

	def __repr__(self):
		edge = '-'
		if isinstance(self.edge, LabelTrip): edge = 'trip:{}'.format(self.edge.ts_from.trip.id)
		elif isinstance(self.edge, LabelFp): edge = 'fp:{}'.format(self.edge.stop_from.id)
		return '<Label {} arr={} n={} via={}>'.format(self.stop.id, self.dts_arr, self.n, edge)


class LabelSet:
	'''Per-round labels produced by a single query.
		Each round only contains labels that improved on all previous rounds,
			and can not be changed after it was closed.'''

	def __init__(self, stop_src, dts_src):
		self.stop_src, self.dts_src = stop_src, dts_src
		self.rounds, self.idx_best = list(), dict()

	def add_round(self, labels):
		'Close next round with {stop: Label} improvements found there.'
		n = len(self.rounds)
		for stop, label in labels.items():
			assert label.n == n, [n, label]
			label_prev = self.idx_best.get(stop)
			assert not label_prev or label.dts_arr < label_prev.dts_arr, [label_prev, label]
			self.idx_best[stop] = label
		self.rounds.append(dict(labels))
		return n

	def is_open(self, n):
		'Rounds are closed in order, and only the next one can still get new labels.'
		return n == len(self.rounds)

	def best(self, stop):
		'Label with lowest arrival time across all rounds, found in earliest round.'
		return self.idx_best.get(stop)

	def arrival(self, stop, n=None):
		'earliestArrival for stop as of the end of round n (or the last one).'
		if n is None: n = len(self.rounds) - 1
		for labels in reversed(self.rounds[:n+1]):
			if stop in labels: return labels[stop].dts_arr
		return u.inf

	def __len__(self): return len(self.rounds)
	def __iter__(self): return iter(self.rounds)
	def __getitem__(self, n): return self.rounds[n]
