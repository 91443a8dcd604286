import itertools as it, operator as op, functools as ft

from . import utils as u, types as t


@u.attr_struct(vals_to_attrs=True)
class EngineConf:
	keys = 'max_rounds' # max transit boardings in a journey, required
	log_progress_for = None # or a set/list of prefixes
	log_progress_steps = 30


def timer(self_or_func, func=None, *args, **kws):
	'Calculation call wrapper for timer/progress logging.'
	if not func: return lambda s,*a,**k: s.timer_wrapper(self_or_func, s, *a, **k)
	return self_or_func.timer_wrapper(func, *args, **kws)


def labels_to_journey(labels, stop_dst):
	'''Follow parent-links from the best stop_dst label back to the origin,
		returning Journey with one Leg per label edge, or None if stop_dst was never reached.'''
	label = labels.best(stop_dst)
	if not label: return None

	legs = list()
	while label.edge:
		edge, label_prev = label.edge, label.prev
		if isinstance(edge, t.internal.LabelTrip):
			ts_from, ts_to = edge
			legs.append(t.public.Leg(
				t.public.LegMode.transit, ts_from.stop, ts_to.stop,
				ts_from.dts_dep, ts_to.dts_arr, ts_from.trip.route_id, ts_from.trip.id ))
		elif isinstance(edge, t.internal.LabelFp):
			legs.append(t.public.Leg(
				t.public.LegMode.walk, edge.stop_from, edge.stop_to,
				label_prev.dts_arr, label_prev.dts_arr + edge.delta ))
		else: raise ValueError(edge)
		assert label_prev.stop == legs[-1].stop_from, [label, label_prev]
		label = label_prev
	assert label.stop == labels.stop_src and label.dts_arr == labels.dts_src, label

	legs.reverse()
	return t.public.Journey(labels.dts_src, legs)


class RaptorEngine:

	network = None

	def __init__(self, network, conf, timer_func=None):
		'''Creates RAPTOR round-based routing engine for Network.
			Same engine can be used for any number of concurrent queries,
				as all per-query state is created by these and never stored on it.'''
		if isinstance(conf, int): conf = EngineConf(conf)
		if not isinstance(conf.max_rounds, int) or isinstance(conf.max_rounds, bool)\
				or conf.max_rounds < 0:
			raise ValueError('max_rounds must be a non-negative integer', conf.max_rounds)
		self.network, self.conf, self.log = network, conf, u.get_logger('raptor.engine')
		self.timer_wrapper = timer_func if timer_func else lambda f,*a,**k: f(*a,**k)

	@u.coroutine
	def progress_iter(self, prefix, n_max, steps=None, n=0):
		'Progress logging helper coroutine for long calculations.'
		prefix_set = self.conf.log_progress_for
		if not prefix_set or prefix not in prefix_set:
			while True: yield # dry-run
		if not steps: steps = self.conf.log_progress_steps
		steps = max(1, min(n_max, steps))
		step_n = n_max / steps
		msg_tpl = '[{{}}] Step {{:>{0}.0f}} / {{:{0}d}}{{}}'.format(len(str(steps)))
		while True:
			dn_msg = yield
			if isinstance(dn_msg, tuple): dn, msg = dn_msg
			elif isinstance(dn_msg, int): dn, msg = dn_msg, None
			else: dn, msg = 1, dn_msg
			n += dn
			if n == dn or n % step_n < 1:
				if msg:
					if not isinstance(msg, str): msg = msg[0].format(*msg[1:])
					msg = ': {}'.format(msg)
				self.log.debug(msg_tpl, prefix, n / step_n, steps, msg or '')


	@timer
	def query_labels(self, stop_src, dts_src):
		'''Run footpath-only round 0 and up to max_rounds transit rounds from stop_src,
				departing at dts_src, until some round produces no improvements.
			Returns LabelSet with labels for each round.'''
		network = self.network
		footpaths, lines = network.footpaths, network.lines
		Label, LabelTrip, LabelFp = t.internal.Label, t.internal.LabelTrip, t.internal.LabelFp

		labels = t.internal.LabelSet(stop_src, dts_src)
		best = dict() # earliestArrival: {stop: Label}, only updated between rounds
		dts_best = lambda stop: best[stop].dts_arr if stop in best else u.inf

		def relax_footpaths(round_labels, label_from):
			for stop, delta in footpaths.to_stops_from(label_from.stop):
				if stop == label_from.stop: continue
				dts = label_from.dts_arr + delta
				if stop in round_labels and dts >= round_labels[stop].dts_arr: continue
				if dts >= dts_best(stop): continue
				round_labels[stop] = Label(stop, dts, label_from.n,
					LabelFp(label_from.stop, stop, delta), label_from)

		def close_round(round_labels):
			n = labels.add_round(round_labels)
			best.update(round_labels)
			return n

		# Round 0 - origin and stops reachable from it by footpaths
		round_labels = dict()
		round_labels[stop_src] = label_src = Label(stop_src, dts_src, 0)
		relax_footpaths(round_labels, label_src)
		close_round(round_labels)
		marked = list(round_labels)

		progress = self.progress_iter('rounds', self.conf.max_rounds)
		for n in range(1, self.conf.max_rounds + 1):
			# Lines to scan, each from the first marked stop on it
			queue = dict()
			for stop in marked:
				for stopidx, line in lines.lines_with_stop(stop):
					if stopidx < queue.get(line.idx, (len(line.stops), None))[0]:
						queue[line.idx] = stopidx, line

			round_labels = dict()
			for line_idx in sorted(queue):
				b, line = queue[line_idx]
				line_stops, trip, board_i, label_board = line.stops, None, None, None
				for i in range(b, len(line_stops)):
					stop = line_stops[i]

					if trip: # check improvement
						ts = trip[i]
						if ts.dts_arr < dts_best(stop) and (
								stop not in round_labels or ts.dts_arr < round_labels[stop].dts_arr ):
							assert labels.is_open(n), [n, stop]
							round_labels[stop] = Label( stop,
								ts.dts_arr, n, LabelTrip(trip[board_i], ts), label_board )

					label = best.get(stop) # (re-)boarding uses only labels from previous rounds
					if not label or (trip and label.dts_arr > trip[i].dts_dep): continue
					trip_board = line.earliest_trip(i, label.dts_arr)
					if not trip_board: continue
					if not trip or trip_board[i].dts_dep < trip[i].dts_dep:
						trip, board_i, label_board = trip_board, i, label

			# Footpaths from stops improved by route-scan, using their transit arrival times
			for label_from in list(round_labels.values()): relax_footpaths(round_labels, label_from)

			progress.send([ 'round={} improved-stops={:,} scanned-lines={:,}',
				n, len(round_labels), len(queue) ])
			if not round_labels: break
			close_round(round_labels)
			marked = list(round_labels)

		self.log.debug( 'Query [{} @ {}] finished after'
			' {} round(s), reached stops: {:,}', stop_src.id, dts_src, len(labels) - 1, len(best) )
		return labels

	def query_journey(self, stop_src, stop_dst, dts_src, labels=None):
		'Run query_labels (unless passed) and return (n, Journey) for stop_dst or None.'
		if labels is None: labels = self.query_labels(stop_src, dts_src)
		label = labels.best(stop_dst)
		if not label: return None
		return label.n, labels_to_journey(labels, stop_dst)
