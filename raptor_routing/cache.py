from collections import OrderedDict, Counter, namedtuple
import base64, hashlib, threading, time

from . import utils as u


class CacheCondition(Exception): pass
class CacheMissing(CacheCondition): pass
class CacheExpired(CacheCondition): pass

CacheEntry = namedtuple('CacheEntry', 'ts data')

class QueryCache:
	'''Size- and age-bounded in-memory mapping of query fingerprints to results.
		Least-recently-used entries are evicted when max_size is reached,
			and entries older than max_age (seconds) are dropped when looked up.'''

	version = 1

	@staticmethod
	def seed_hash(val, n=12):
		return base64.urlsafe_b64encode(
			hashlib.sha256(repr(val).encode()).digest() ).decode()[:n]

	def __init__(self, max_size=1000, max_age=15*60, clock=time.monotonic):
		if max_size is not None and max_size < 1:
			raise ValueError('Cache max_size must be a positive integer or None', max_size)
		self.max_size, self.max_age, self.clock = max_size, max_age, clock
		self.entries, self.counts = OrderedDict(), Counter()
		self.lock = threading.Lock() # guards entries and counts, never held while running func
		self.log = u.get_logger('raptor.cache')

	def key(self, *query):
		return 'v{:02d}.{}'.format(self.version, self.seed_hash(query))

	def get(self, key):
		'Return cached data for key or raise CacheMissing/CacheExpired.'
		with self.lock:
			try: entry = self.entries[key]
			except KeyError: raise CacheMissing(key) from None
			if self.max_age is not None and self.clock() - entry.ts > self.max_age:
				del self.entries[key]
				raise CacheExpired(key)
			self.entries.move_to_end(key)
			return entry.data

	def set(self, key, data):
		with self.lock:
			self.entries[key] = CacheEntry(self.clock(), data)
			self.entries.move_to_end(key)
			evicted = list()
			while self.max_size is not None and len(self.entries) > self.max_size:
				evicted.append(self.entries.popitem(last=False)[0])
			self.counts['evicted'] += len(evicted)
		for key_evicted in evicted:
			self.log.debug('Evicted cache entry: {}', key_evicted)

	def count(self, k):
		with self.lock: self.counts[k] += 1

	def run(self, key, func, *args, **kws):
		'Return cached result for key, or run func and cache its result.'
		try: data = self.get(key)
		except CacheExpired:
			self.count('expired')
			self.log.debug('[{}] Expired cache entry', key)
		except CacheMissing: pass
		else:
			self.count('hit')
			self.log.debug('[{}] Returning cached result', key)
			return data
		self.count('miss')
		data = func(*args, **kws)
		self.set(key, data)
		return data

	def clear(self):
		with self.lock:
			self.log.debug('Clearing cache ({:,} entries)', len(self.entries))
			self.entries.clear()

	def stats(self):
		with self.lock:
			return dict(size=len(self.entries), **dict(
				(k, self.counts[k]) for k in ['hit', 'miss', 'expired', 'evicted'] ))

	def __contains__(self, key): return key in self.entries
	def __len__(self): return len(self.entries)
