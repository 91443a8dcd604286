import itertools as it, operator as op, functools as ft
import enum, datetime

from .. import utils as u


class SolutionStatus(enum.Enum):
	'Used as a result for solution (e.g. Trip) comparisons.'
	dominated = False
	non_dominated = True
	equal = None
	undecidable = ...


### NetworkModel data

# Stops, scheduled trips grouped into routes and fixed-duration
#  footpaths between stops. Built and validated once by network.load(),
#  then shared read-only between all queries against it.


@u.attr_struct(repr=False, eq=False)
class Stop:
	keys = 'id name lat lon'
	def __hash__(self): return hash(self.id)
	def __eq__(self, stop): return u.same_type_and_id(self, stop)
	def __repr__(self):
		if self.id == self.name: return '<Stop {}>'.format(self.id)
		return '<Stop {} [{}]>'.format(self.name, self.id)

	def to_dict(self): return dict(id=self.id, name=self.name)

class Stops:
	def __init__(self): self.set_idx = dict()

	def add(self, stop):
		if stop.id in self.set_idx: stop = self.set_idx[stop.id]
		else: self.set_idx[stop.id] = stop
		return stop

	def get(self, stop):
		if isinstance(stop, Stop): stop = stop.id
		return self.set_idx.get(stop)

	def __contains__(self, stop): return self.get(stop) is not None
	def __getitem__(self, stop_id): return self.set_idx[stop_id]
	def __len__(self): return len(self.set_idx)
	def __iter__(self): return iter(self.set_idx.values())


class Footpaths:
	'''Directional walking edges with fixed time delta (seconds) for each.
		Only shortest delta is stored for each (stop_from, stop_to) pair.'''

	def __init__(self): self.set_idx_to = dict()

	def add(self, stop_a, stop_b, delta):
		delta_prev = self.set_idx_to.get(stop_a, dict()).get(stop_b)
		if delta_prev is not None and delta_prev <= delta: return False
		self.set_idx_to.setdefault(stop_a, dict())[stop_b] = delta
		return True

	def to_stops_from(self, stop):
		'Return (stop, delta) tuples for all footpaths starting at stop.'
		return self.set_idx_to.get(stop, dict()).items()

	def time_delta(self, stop_from, stop_to, default=None):
		return self.set_idx_to.get(stop_from, dict()).get(stop_to, default)

	def stat_mean_delta(self):
		deltas = list(delta for a, b, delta in self)
		return (sum(deltas) / len(deltas)) if deltas else 0

	def __iter__(self):
		for k1, k1_fps in self.set_idx_to.items():
			for k2, delta in k1_fps.items(): yield k1, k2, delta
	def __len__(self): return sum(len(fps) for fps in self.set_idx_to.values())


@u.attr_struct(repr=False, eq=False)
class TripStop:
	trip = u.attr_init()
	stopidx = u.attr_init()
	stop = u.attr_init()
	dts_arr = u.attr_init()
	dts_dep = u.attr_init()

	def __hash__(self): return hash((self.trip, self.stopidx))
	def __repr__(self): # mostly to avoid recursion
		return ( 'TripStop(trip_id={trip_id}, stopidx={0.stopidx},'
			' stop_id={0.stop.id}, dts_arr={0.dts_arr}, dts_dep={0.dts_dep})' )\
			.format(self, trip_id=self.trip.id if self.trip else None)

@u.attr_struct(repr=False, eq=False)
class Trip:
	id = u.attr_init()
	route_id = u.attr_init()
	stops = u.attr_init(list)

	def add(self, stop):
		assert stop.dts_arr <= stop.dts_dep
		assert not self.stops or self.stops[-1].dts_dep <= stop.dts_arr
		self.stops.append(stop)

	def compare(self, trip):
		'''Return SolutionStatus for this trip as compared to other trip with the same stops.
			"undecidable" means that one of these overtakes the other somewhere on the way.'''
		check = set()
		for sa, sb in zip(self, trip):
			a_first = sa.dts_arr <= sb.dts_arr and sa.dts_dep <= sb.dts_dep
			b_first = sb.dts_arr <= sa.dts_arr and sb.dts_dep <= sa.dts_dep
			if a_first and b_first: continue
			if not (a_first or b_first): return SolutionStatus.undecidable
			check.add(a_first)
		if len(check) == 1: return SolutionStatus(check.pop())
		if not check: return SolutionStatus.equal
		return SolutionStatus.undecidable

	@property
	def stop_seq(self): return tuple(map(op.attrgetter('stop'), self.stops))

	def __hash__(self): return hash(self.id)
	def __eq__(self, trip): return u.same_type_and_id(self, trip)
	def __repr__(self): # mostly to avoid recursion
		return 'Trip(id={0.id}, route={0.route_id}, stops={stops})'.format(self, stops=len(self.stops))

	def __getitem__(self, n): return self.stops[n]
	def __len__(self): return len(self.stops)
	def __iter__(self): return iter(self.stops)

class Trips:

	def __init__(self): self.set_idx = dict()

	def add(self, trip):
		assert len(trip) >= 2, trip
		self.set_idx[trip.id] = trip

	def stat_mean_stops(self):
		if not len(self): return 0
		return (sum(len(t) for t in self) / len(self))

	def __contains__(self, trip_id): return trip_id in self.set_idx
	def __getitem__(self, trip_id): return self.set_idx[trip_id]
	def __len__(self): return len(self.set_idx)
	def __iter__(self): return iter(self.set_idx.values())


@u.attr_struct
class Route:
	id = u.attr_init()
	trips = u.attr_init(list)

class Routes:
	def __init__(self): self.set_idx = dict()
	def add(self, route): self.set_idx[route.id] = route
	def __contains__(self, route_id): return route_id in self.set_idx
	def __getitem__(self, route_id): return self.set_idx[route_id]
	def __len__(self): return len(self.set_idx)
	def __iter__(self): return iter(self.set_idx.values())


@u.attr_struct(frozen=True, eq=False)
class Network:
	stops = u.attr_init()
	footpaths = u.attr_init()
	trips = u.attr_init()
	routes = u.attr_init()
	lines = u.attr_init()
	uid = u.attr_init(u.get_uid_token)

	def routes_for_stop(self, stop):
		'Set of route ids for all routes serving the stop.'
		stop = self.stops.get(stop)
		if not stop: return set()
		return set(line.route_id for stopidx, line in self.lines.lines_with_stop(stop))

	def route_stops(self, route_id):
		'List of stop sequences (in trip order), one for each Line of the Route.'
		return list(line.stops for line in self.lines.lines_for_route(route_id))



### Query result

# Frozen, as cached results are handed out to all callers of the same query

class LegMode(enum.Enum):
	transit = 'transit'
	walk = 'walk'

@u.attr_struct(repr=False, frozen=True)
class Leg:
	mode = u.attr_init()
	stop_from = u.attr_init()
	stop_to = u.attr_init()
	dts_dep = u.attr_init()
	dts_arr = u.attr_init()
	route_id = u.attr_init(None)
	trip_id = u.attr_init(None)

	def to_dict(self):
		leg = dict(
			startStop=self.stop_from.to_dict(), endStop=self.stop_to.to_dict(),
			mode=self.mode.value, departureTime=self.dts_dep, arrivalTime=self.dts_arr )
		if self.mode is LegMode.transit: leg['routeId'] = self.route_id
		return leg

	def __repr__(self):
		return '<Leg {} {}->{} [{}-{}]{}>'.format(
			self.mode.value, self.stop_from.id, self.stop_to.id,
			u.dts_format(self.dts_dep), u.dts_format(self.dts_arr),
			' route={}'.format(self.route_id) if self.route_id is not None else '' )


@u.attr_struct(repr=False, frozen=True)
class Journey:
	dts_start = u.attr_init()
	legs = u.attr_init(tuple, converter=tuple)

	@property
	def dts_dep(self): return self.legs[0].dts_dep if self.legs else self.dts_start
	@property
	def dts_arr(self): return self.legs[-1].dts_arr if self.legs else self.dts_start
	@property
	def trip_count(self):
		return sum(1 for leg in self.legs if leg.mode is LegMode.transit)

	def to_dict(self): return list(leg.to_dict() for leg in self.legs)

	def __len__(self): return len(self.legs)
	def __iter__(self): return iter(self.legs)
	def __getitem__(self, n): return self.legs[n]
	def __repr__(self):
		return '<Journey[ {} ]>'.format(' - '.join(map(repr, self.legs)))

	def pretty_print(self, dts_format_func=None, indent=0, **print_kws):
		if not dts_format_func: dts_format_func = u.dts_format
		p = lambda tpl,*a,**k: print(' '*indent + tpl.format(*a,**k), **print_kws)
		stop_id_ext = lambda stop:\
			' [{}]'.format(stop.id) if stop.id != stop.name else ''

		p( 'Journey (arrival: {}, trips: {}, duration: {}):',
			dts_format_func(self.dts_arr), self.trip_count,
			u.dts_format(self.dts_arr - self.dts_dep) )
		for leg in self.legs:
			if leg.mode is LegMode.transit:
				p('  trip [{}:{}]:', leg.route_id, leg.trip_id)
				p( '    from (dep at {}): {}{}',
					dts_format_func(leg.dts_dep), leg.stop_from.name, stop_id_ext(leg.stop_from) )
				p( '    to (arr at {}): {}{}',
					dts_format_func(leg.dts_arr), leg.stop_to.name, stop_id_ext(leg.stop_to) )
			else:
				p('  footpath (time: {}):', datetime.timedelta(seconds=int(leg.dts_arr - leg.dts_dep)))
				p('    from: {}{}', leg.stop_from.name, stop_id_ext(leg.stop_from))
				p('    to: {}{}', leg.stop_to.name, stop_id_ext(leg.stop_to))


@u.attr_struct(repr=False, frozen=True)
class PlanResult:
	'''Result for one destination of a query.
		"n" is the round where winning label was found,
			i.e. number of transit boardings, or None if destination is unreachable.'''
	stop_id = u.attr_init()
	dts_arr = u.attr_init(u.inf)
	journey = u.attr_init(None)
	n = u.attr_init(None)

	@classmethod
	def unreachable(cls, stop_id): return cls(stop_id)

	@property
	def reachable(self): return self.dts_arr != u.inf

	@property
	def legs(self): return list(self.journey or list())

	def to_dict(self): return dict(arrivalTime=self.dts_arr, path=list(leg.to_dict() for leg in self.legs))

	def __repr__(self):
		if not self.reachable: return '<PlanResult {} unreachable>'.format(self.stop_id)
		return '<PlanResult {} arr={} n={} legs={}>'.format(
			self.stop_id, u.dts_format(self.dts_arr), self.n, len(self.legs) )

	def pretty_print(self, dts_format_func=None, indent=0, **print_kws):
		if not dts_format_func: dts_format_func = u.dts_format
		print(' '*indent + 'Destination {} (arrival: {}):'.format(
			self.stop_id, dts_format_func(self.dts_arr) if self.reachable else 'unreachable' ), **print_kws)
		if not self.reachable: return
		if not self.journey: print(' '*indent + '  already there', **print_kws)
		else: self.journey.pretty_print(dts_format_func, indent=indent+2, **print_kws)

