import itertools as it, operator as op, functools as ft

from . import engine, utils as u, types as t


class QueryError(Exception): pass


class JourneyPlanner:
	'''Runs earliest-arrival queries against current Network snapshot.
		Snapshot can be replaced at any time via replace_network(),
			queries already in progress finish with the one they started with.'''

	def __init__(self, network, conf, cache=None, timer_func=None):
		if isinstance(conf, int): conf = engine.EngineConf(conf)
		self.conf, self.cache, self.timer_func = conf, cache, timer_func
		self.log = u.get_logger('raptor.plan')
		self.replace_network(network)

	@property
	def network(self): return self.snapshot[0]

	def replace_network(self, network):
		router = engine.RaptorEngine(network, self.conf, timer_func=self.timer_func)
		self.snapshot = network, router # replaced as a whole, read once per query
		if self.cache is not None: self.cache.clear()
		self.log.debug('Using network snapshot: {}', network.uid)

	def plan(self, origin_id, dts_src, destination_ids):
		'Return list of PlanResult, one for each of destination_ids, in the same order.'
		network, router = self.snapshot
		try: dts_src = u.dts_parse(dts_src)
		except (TypeError, ValueError):
			raise QueryError('Unrecognized departure time value', dts_src) from None
		stop_src = network.stops.get(str(origin_id))
		if not stop_src: raise QueryError('Unknown origin stop id', origin_id)
		destination_ids = list(map(str, destination_ids))
		if self.cache is None:
			return list(self._plan(network, router, stop_src, dts_src, destination_ids))
		key = self.cache.key(
			network.uid, stop_src.id, dts_src, tuple(destination_ids), self.conf.max_rounds )
		return list(self.cache.run( key,
			self._plan, network, router, stop_src, dts_src, destination_ids ))

	def _plan(self, network, router, stop_src, dts_src, destination_ids):
		labels, results = router.query_labels(stop_src, dts_src), list()
		for stop_id in destination_ids:
			stop_dst = network.stops.get(stop_id)
			if not stop_dst:
				self.log.debug('Unknown destination stop id: {}', stop_id)
				results.append(t.public.PlanResult.unreachable(stop_id))
				continue
			if stop_dst == stop_src:
				results.append(t.public.PlanResult(
					stop_id, dts_src, t.public.Journey(dts_src), 0 ))
				continue
			res = router.query_journey(stop_src, stop_dst, dts_src, labels=labels)
			if not res:
				self.log.debug('Destination unreachable: {} -> {}', stop_src.id, stop_id)
				results.append(t.public.PlanResult.unreachable(stop_id))
				continue
			n, journey = res
			results.append(t.public.PlanResult(stop_id, journey.dts_arr, journey, n))
		return tuple(results)


def plan(network, origin_id, dts_src, destination_ids, max_rounds=8, conf=None):
	'One-shot query, without caching. "conf" (EngineConf) overrides max_rounds, if passed.'
	return JourneyPlanner(network, conf or max_rounds).plan(origin_id, dts_src, destination_ids)
