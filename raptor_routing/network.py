import itertools as it, operator as op, functools as ft
from collections import defaultdict
from pathlib import Path
import json

from . import utils as u, types as t


log = u.get_logger('raptor.net')


class NetworkLoadError(Exception): pass


def _get(record, *keys, default=...):
	if not isinstance(record, dict): raise NetworkLoadError('Malformed record', record)
	for k in keys:
		if k in record: return record[k]
	if default is not ...: return default
	raise NetworkLoadError('Missing required field', keys[0], record)

def _records(val, what):
	if val is None: return list()
	if not isinstance(val, list): raise NetworkLoadError('Expected a list of {}'.format(what), val)
	return val

def _dts(val, what, record):
	try: return u.dts_parse(val)
	except (TypeError, ValueError):
		raise NetworkLoadError('Unrecognized time value for {}'.format(what), val, record) from None


def parse_stops(stop_list):
	stops = t.public.Stops()
	for s in _records(stop_list, 'stops'):
		stop_id = str(_get(s, 'id'))
		if stop_id in stops: raise NetworkLoadError('Duplicate stop id', stop_id)
		try: lat, lon = float(_get(s, 'lat', default=0)), float(_get(s, 'long', 'lon', default=0))
		except (TypeError, ValueError):
			raise NetworkLoadError('Bogus stop coordinates', s) from None
		stops.add(t.public.Stop(stop_id, str(_get(s, 'name', default=stop_id)), lat, lon))
	return stops

def parse_trip(stops, route_id, trip_id, stop_times):
	trip, dts_chk = t.public.Trip(trip_id, route_id), None
	for stopidx, st in enumerate(_records(stop_times, 'trip stop times')):
		stop_id = str(_get(st, 'stopId', 'stop_id'))
		stop = stops.get(stop_id)
		if not stop:
			raise NetworkLoadError('Trip references unknown stop', trip_id, stop_id)
		dts_arr, dts_dep = _get(st, 'arrival', default=None), _get(st, 'departure', default=None)
		if dts_arr is None and dts_dep is None:
			raise NetworkLoadError('Missing arrival/departure times for trip stop', trip_id, stopidx, st)
		if dts_arr is None: dts_arr = dts_dep
		if dts_dep is None: dts_dep = dts_arr
		dts_arr, dts_dep = _dts(dts_arr, 'arrival', st), _dts(dts_dep, 'departure', st)
		if not ((dts_chk is None or dts_arr >= dts_chk) and dts_arr <= dts_dep):
			u.log_lines( log.debug,
				[('Time jumps backwards for stops of the trip: {}', trip_id)]
				+ list(('  {}', st) for st in stop_times) )
			raise NetworkLoadError('Time jumps backwards for stops of the trip', trip_id, stopidx)
		dts_chk = dts_dep
		trip.add(t.public.TripStop(trip, stopidx, stop, dts_arr, dts_dep))
	return trip

def parse_routes(stops, route_list):
	routes, trips = t.public.Routes(), t.public.Trips()
	for r in _records(route_list, 'routes'):
		route_id = str(_get(r, 'id'))
		if route_id in routes: raise NetworkLoadError('Duplicate route id', route_id)
		route = t.public.Route(route_id)
		for n, tr in enumerate(_records(_get(r, 'trips', default=None), 'route trips')):
			trip_id = str(_get(tr, 'id', default='{}.{}'.format(route_id, n)))
			if trip_id in trips: raise NetworkLoadError('Duplicate trip id', trip_id)
			trip = parse_trip(stops, route_id, trip_id, _get(tr, 'stopTimes', 'stop_times'))
			if len(trip) < 2:
				log.info('Skipping trip with less than two stops: {} (route: {})', trip_id, route_id)
				continue
			trips.add(trip)
			route.trips.append(trip)
		routes.add(route)
	return routes, trips

def parse_footpaths(stops, fp_list):
	footpaths, fp_dup_count = t.public.Footpaths(), 0
	for fp in _records(fp_list, 'footpaths'):
		stop_a, stop_b = (
			stops.get(str(_get(fp, *k))) for k in
			[('fromStopId', 'from_stop_id'), ('toStopId', 'to_stop_id')] )
		if not (stop_a and stop_b):
			raise NetworkLoadError('Footpath references unknown stop', fp)
		delta = _get(fp, 'durationSeconds', 'duration')
		if not isinstance(delta, (int, float)) or isinstance(delta, bool):
			raise NetworkLoadError('Footpath duration must be a number', fp)
		if delta < 0: raise NetworkLoadError('Negative footpath duration', fp)
		if not footpaths.add(stop_a, stop_b, delta): fp_dup_count += 1
	if fp_dup_count:
		log.debug('Discarded longer duplicate footpaths: {:,}', fp_dup_count)
	return footpaths

def build_lines(routes):
	'Group trips of each route into Lines with same stops and no overtaking.'
	lines = t.internal.Lines()
	for route in routes:
		line_trips = defaultdict(list)
		for trip in route.trips: line_trips[trip.stop_seq].append(trip)

		for trips in line_trips.values():
			lines_for_stopseq = list()

			# Split same-stops trips into non-overtaking groups
			for trip_a in trips:
				for line in lines_for_stopseq:
					for trip_b in line:
						ordering = trip_a.compare(trip_b)
						if ordering is t.public.SolutionStatus.undecidable: break
					else:
						line.add(trip_a)
						break
				else: # failed to find line to group trip into
					lines_for_stopseq.append(t.internal.Line(route.id, trip_a))

			lines.add(*lines_for_stopseq)

	return lines


def load(snapshot):
	'''Build validated Network from snapshot mapping with
		"stops", "routes" and "footpaths" lists. Raises NetworkLoadError for malformed data.'''
	if not isinstance(snapshot, dict):
		raise NetworkLoadError('Network snapshot must be a mapping', type(snapshot))
	stops = parse_stops(snapshot.get('stops'))
	routes, trips = parse_routes(stops, snapshot.get('routes'))
	footpaths = parse_footpaths(stops, snapshot.get('footpaths'))
	lines = build_lines(routes)
	network = t.public.Network(stops, footpaths, trips, routes, lines)
	log.debug(
		'Loaded network [{}]: stops={:,}, footpaths={:,} (mean-delta={:,.1f}s),'
			' routes={:,}, lines={:,}, trips={:,} (mean-stops={:,.1f})',
		network.uid, len(stops), len(footpaths), footpaths.stat_mean_delta(),
		len(routes), len(lines), len(trips), trips.stat_mean_stops() )
	return network

def load_file(path):
	'Load Network from JSON or YAML (.yaml/.yml) snapshot file.'
	path = Path(path)
	with path.open(encoding='utf-8-sig') as src:
		if path.suffix.lower() in ['.yaml', '.yml']:
			import yaml
			try: snapshot = u.yaml_load(src)
			except (yaml.YAMLError, UnicodeDecodeError) as err:
				raise NetworkLoadError('Failed to parse YAML snapshot', str(path), err) from None
		else:
			try: snapshot = json.load(src)
			except ValueError as err:
				raise NetworkLoadError('Failed to parse JSON snapshot', str(path), err) from None
	log.debug('Parsed network snapshot from: {}', path)
	return load(snapshot)
