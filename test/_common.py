import itertools as it, operator as op, functools as ft
from collections import ChainMap, OrderedDict
from collections.abc import Mapping
from pathlib import Path
import os, sys, types

import yaml # PyYAML module is required for tests

path_project = Path(__file__).parent.parent
sys.path.insert(1, str(path_project))
import raptor_routing as rr

verbose = os.environ.get('RAPTOR_DEBUG')
if verbose:
	rr.u.logging.basicConfig(
		format='%(asctime)s :: %(name)s %(levelname)s :: %(message)s',
		datefmt='%Y-%m-%d %H:%M:%S', level=rr.u.logging.DEBUG )



class dmap(ChainMap):

	maps = None

	def __init__(self, *maps, **map0):
		maps = list((v if not isinstance( v,
			(types.GeneratorType, list, tuple) ) else OrderedDict(v)) for v in maps)
		if map0 or not maps: maps = [map0] + maps
		super(dmap, self).__init__(*maps)

	def __repr__(self):
		return '<{} {:x} {}>'.format(
			self.__class__.__name__, id(self), repr(self._asdict()) )

	def _asdict(self):
		items = dict()
		for k, v in self.items():
			if isinstance(v, self.__class__): v = v._asdict()
			items[k] = v
		return items

	def _set_attr(self, k, v):
		self.__dict__[k] = v

	def __iter__(self):
		key_set = dict.fromkeys(set().union(*self.maps), True)
		return filter(lambda k: key_set.pop(k, False), it.chain.from_iterable(self.maps))

	def __getitem__(self, k):
		k_maps = list()
		for m in self.maps:
			if k in m:
				if isinstance(m[k], Mapping): k_maps.append(m[k])
				elif not (m[k] is None and k_maps): return m[k]
		if not k_maps: raise KeyError(k)
		return self.__class__(*k_maps)

	def __getattr__(self, k):
		try: return self[k]
		except KeyError: raise AttributeError(k)

	def __setattr__(self, k, v):
		for m in map(op.attrgetter('__dict__'), [self] + self.__class__.mro()):
			if k in m:
				self._set_attr(k, v)
				break
		else: self[k] = v

	def __delitem__(self, k):
		for m in self.maps:
			if k in m: del m[k]


def load_test_data(path_dir, path_stem, name):
	'Load test data from specified YAML file and return as dmap object.'
	with (path_dir / '{}.test.{}.yaml'.format(path_stem, name)).open() as src:
		return dmap(rr.u.yaml_load(src, dict_cls=OrderedDict))


def struct_from_val(val, cls, as_tuple=False):
	if isinstance(val, (tuple, list)): val = cls(*val)
	elif isinstance(val, (dmap, dict, OrderedDict)): val = cls(**val)
	else: raise ValueError(val)
	return val if not as_tuple else rr.u.attr.astuple(val)

@rr.u.attr_struct
class TripStopSpec: keys = 'stop_id dts_arr dts_dep'

@rr.u.attr_struct
class FootpathSpec: keys = 'src dst dt'

@rr.u.attr_struct
class LegSpec:
	mode = rr.u.attr_init()
	src = rr.u.attr_init()
	dst = rr.u.attr_init()
	dts_dep = rr.u.attr_init()
	dts_arr = rr.u.attr_init()
	route_id = rr.u.attr_init(None)

@rr.u.attr_struct
class QueryGoal:
	src = rr.u.attr_init()
	dst = rr.u.attr_init()
	dts_start = rr.u.attr_init()
	max_rounds = rr.u.attr_init(8)



def snapshot_from_test_data(net):
	'''Build snapshot mapping from compact test network description:
		{stops: [id, ...], routes: {route_id: [trip, ...]}, footpaths: [[src, dst, dt], ...]},
			where trip is a list of [stop_id, dts_arr, dts_dep] with "x" for missing times.
		Stops referenced by trips and footpaths do not have to be listed in "stops".'''
	net = net or dict()
	stop_ids = OrderedDict((str(s), None) for s in net.get('stops') or list())
	snapshot = dict(stops=list(), routes=list(), footpaths=list())

	for route_id, trips in (net.get('routes') or dict()).items():
		route = dict(id=route_id, trips=list())
		for trip_data in trips:
			stop_times = list()
			for ts in trip_data:
				stop_id, dts_arr, dts_dep = struct_from_val(ts, TripStopSpec, as_tuple=True)
				stop_ids[str(stop_id)] = None
				st = dict(stopId=str(stop_id))
				if dts_arr not in [None, 'x']: st['arrival'] = dts_arr
				if dts_dep not in [None, 'x']: st['departure'] = dts_dep
				stop_times.append(st)
			route['trips'].append(dict(stopTimes=stop_times))
		snapshot['routes'].append(route)

	for fp in net.get('footpaths') or list():
		src, dst, dt = struct_from_val(fp, FootpathSpec, as_tuple=True)
		stop_ids.update((str(s), None) for s in [src, dst])
		snapshot['footpaths'].append(dict(
			fromStopId=str(src), toStopId=str(dst), durationSeconds=dt ))

	snapshot['stops'].extend(dict(id=s, name=s) for s in stop_ids)
	return snapshot

def network_from_test_data(net):
	return rr.network.load(snapshot_from_test_data(net))



class JourneyAssertions:

	def __init__(self, test_case): self.tc = test_case

	def assert_legs_consistent(self, journey, dts_start):
		'Every leg ends after it starts and no leg starts before the previous one ended.'
		dts_chk = dts_start
		for leg in journey:
			self.tc.assertGreaterEqual(leg.dts_dep, dts_chk, leg)
			self.tc.assertGreaterEqual(leg.dts_arr, leg.dts_dep, leg)
			dts_chk = leg.dts_arr
		for leg_a, leg_b in zip(journey.legs, journey.legs[1:]):
			self.tc.assertEqual(leg_a.stop_to, leg_b.stop_from, [leg_a, leg_b])

	def assert_result(self, res, res_test, dts_start, verbose=verbose):
		'Check PlanResult against test-data (from YAML), which is either "unreachable" or a mapping.'
		if verbose: res.pretty_print()
		if res_test == 'unreachable':
			self.tc.assertFalse(res.reachable, res)
			self.tc.assertEqual(res.dts_arr, rr.u.inf)
			self.tc.assertEqual(res.legs, list())
			self.tc.assertEqual(res.to_dict(), dict(arrivalTime=rr.u.inf, path=list()))
			return

		self.tc.assertTrue(res.reachable, res)
		self.tc.assertEqual(res.dts_arr, rr.u.dts_parse(res_test.arrival))
		if 'n' in res_test: self.tc.assertEqual(res.n, res_test.n)
		self.assert_legs_consistent(res.journey, dts_start)

		legs_test = list(struct_from_val(leg, LegSpec) for leg in res_test.legs or list())
		self.tc.assertEqual(len(res.legs), len(legs_test), res.legs)
		for leg, leg_test in zip(res.legs, legs_test):
			self.tc.assertEqual(leg.mode.value, leg_test.mode, leg)
			self.tc.assertEqual([leg.stop_from.id, leg.stop_to.id], [leg_test.src, leg_test.dst], leg)
			self.tc.assertEqual(
				[leg.dts_dep, leg.dts_arr],
				list(map(rr.u.dts_parse, [leg_test.dts_dep, leg_test.dts_arr])), leg )
			if leg_test.route_id is not None: self.tc.assertEqual(leg.route_id, leg_test.route_id, leg)
		if res.legs: self.tc.assertEqual(res.legs[-1].dts_arr, res.dts_arr)
