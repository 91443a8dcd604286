import itertools as it, operator as op, functools as ft
import sys, json, logging

import raptor_routing as rr


def main(args=None):
	conf_engine = rr.engine.EngineConf(8, log_progress_for={'rounds'})

	import argparse
	parser = argparse.ArgumentParser(
		description='Round-based earliest-arrival journey planner for transit network snapshots.')
	parser.add_argument('snapshot',
		help='Path to network snapshot file with stops, routes and footpaths.'
			' Parsed as YAML if it has .yaml/.yml extension, JSON otherwise.')

	group = parser.add_argument_group('Engine options')
	group.add_argument('-m', '--max-rounds',
		type=int, metavar='n', default=conf_engine.max_rounds,
		help='Max number of transit trips (boardings) in a journey.'
			' 0 will only allow walking from the origin stop. Default: %(default)s')
	group.add_argument('--engine-conf', metavar='yaml-data',
		help='Override values for EngineConf as a YAML mapping.'
			' Example: {log_progress_steps: 1000}')

	group = parser.add_argument_group('Misc/debug options')
	group.add_argument('--debug', action='store_true', help='Verbose operation mode.')

	cmds = parser.add_subparsers(title='Commands', dest='call')


	cmd = cmds.add_parser('validate',
		help='Load and check network snapshot, print some stats about it.')


	cmd = cmds.add_parser('query',
		help='Run earliest arrival query from one stop to any number of destinations.')

	group = cmd.add_argument_group('Query parameters')
	group.add_argument('stop_from', help='Stop ID to query journeys from. Example: A')
	group.add_argument('day_time',
		help='Day time to start journey at, either as HH:MM,'
			' HH:MM:SS or just seconds int/float. Example: 08:30')
	group.add_argument('stop_to', nargs='+', help='Destination stop ID(s). Example: C')

	group = cmd.add_argument_group('Output')
	group.add_argument('--json', action='store_true',
		help='Print results as JSON list, with one {arrivalTime, path} object per destination.')
	group.add_argument('-o', '--output', metavar='path',
		help='Write output to specified file (atomically) instead of stdout.')

	group = cmd.add_argument_group('Result cache')
	group.add_argument('--cache-size', type=int, metavar='n', default=0,
		help='Max number of query results to keep cached in memory.'
			' Only useful when same query is repeated, e.g. with multiple -r/--repeat runs.'
			' Default: %(default)s (disabled)')
	group.add_argument('--cache-max-age', type=float, metavar='seconds', default=15*60,
		help='Max time for cached query results to be considered valid. Default: %(default)ss')
	group.add_argument('-r', '--repeat', type=int, metavar='n', default=1,
		help='Run same query specified number of times, e.g. for timing it.'
			' Only the last result is printed. Default: %(default)s')


	opts = parser.parse_args(sys.argv[1:] if args is None else args)
	if not opts.call: parser.error('Command must be specified')

	logging.basicConfig(
		format='%(asctime)s :: %(name)s %(levelname)s :: %(message)s',
		datefmt='%Y-%m-%d %H:%M:%S',
		level=logging.DEBUG if opts.debug else logging.WARNING )
	log = rr.u.get_logger('raptor.cli')

	conf_engine.max_rounds = opts.max_rounds
	if opts.engine_conf:
		import yaml
		conf_update = yaml.safe_load(opts.engine_conf)
		if not isinstance(conf_update, dict):
			parser.error('--engine-conf must be a YAML mapping: {!r}'.format(opts.engine_conf))
		for k, v in conf_update.items():
			if not hasattr(conf_engine, k):
				parser.error('Unrecognized engine conf option: {!r} (value: {!r})'.format(k, v))
			setattr(conf_engine, k, v)

	def err_exit(err):
		print('ERROR: {}'.format(': '.join(map(str, err.args))), file=sys.stderr)
		return 1

	try:
		planner = rr.init_planner( opts.snapshot, conf_engine,
			cache_size=getattr(opts, 'cache_size', None),
			cache_max_age=getattr(opts, 'cache_max_age', None), timer_func=rr.calc_timer )
	except rr.network.NetworkLoadError as err: return err_exit(err)
	except OSError as err:
		return err_exit(rr.network.NetworkLoadError('Failed to read snapshot file', err))
	except ValueError as err: parser.error(str(err))

	if opts.call == 'validate':
		net = planner.network
		print('Network snapshot: {}'.format(opts.snapshot))
		for k, v in [
				('stops', len(net.stops)), ('routes', len(net.routes)),
				('trips', len(net.trips)), ('lines', len(net.lines)),
				('footpaths', len(net.footpaths)) ]:
			print('  {}: {:,}'.format(k, v))

	elif opts.call == 'query':
		if opts.repeat < 1: parser.error('-r/--repeat value must be positive')
		try:
			for n in range(opts.repeat):
				results = planner.plan(opts.stop_from, opts.day_time, opts.stop_to)
		except rr.planner.QueryError as err: return err_exit(err)
		if planner.cache is not None: log.debug('Query cache stats: {}', planner.cache.stats())

		def print_results(dst):
			if opts.json:
				json.dump(list(res.to_dict() for res in results), dst, indent=2)
				dst.write('\n')
			else:
				for res in results: res.pretty_print(file=dst)
		if not opts.output: print_results(sys.stdout)
		else:
			with rr.u.safe_replacement(opts.output) as dst: print_results(dst)

	else: parser.error('Action not implemented: {}'.format(opts.call))

if __name__ == '__main__': sys.exit(main())
