import itertools as it, operator as op, functools as ft
import time

from . import engine, network, planner, cache, utils as u, types as t


def calc_timer(func, *args, log=u.get_logger('raptor.timer'), timer_name=None, **kws):
	if not timer_name:
		func_base = func if not isinstance(func, ft.partial) else func.func
		timer_name = '.'.join([func_base.__module__.strip('__'), func_base.__qualname__])
	log.debug('[{}] Starting...', timer_name)
	td = time.monotonic()
	data = func(*args, **kws)
	td = time.monotonic() - td
	log.debug('[{}] Finished in: {:.1f}s', timer_name, td)
	return data


def init_planner(
		snapshot_path, conf_engine=None, max_rounds=8,
		cache_size=None, cache_max_age=None, timer_func=None ):
	'''Load Network from snapshot file and return JourneyPlanner for it.
		Query cache is only enabled if cache_size is passed.'''
	net_load = network.load_file
	if timer_func: net_load = ft.partial(timer_func, net_load, timer_name='network_load')
	net = net_load(snapshot_path)
	query_cache = None
	if cache_size:
		query_cache = cache.QueryCache(cache_size, **(
			dict(max_age=cache_max_age) if cache_max_age is not None else dict() ))
	return planner.JourneyPlanner(
		net, conf_engine or max_rounds, cache=query_cache, timer_func=timer_func )
