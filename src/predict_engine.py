#!/usr/bin/env python3
# predict_engine.py - Table-backed continuation predictor used by the Predictor

import logging
import os

import orjson

from context import Candidate, Segment

logger = logging.getLogger(__name__)

DEFAULT_PREDICT_DB = 'predict.json'


class PredictDb:
    """
    Read-only prediction table.

    File format (JSON), either weighted or plain:
        {
            "query": {"continuation1": weight1, "continuation2": weight2},
            "query2": ["continuation1", "continuation2"],
            ...
        }
    Higher weight ranks first; plain lists keep their order.
    """

    def __init__(self, file_path=None):
        self.file_path = file_path
        self._table = {}
        if file_path:
            self._load(file_path)

    def _load(self, file_path):
        if not os.path.exists(file_path):
            logger.error(f'Predict db not found: {file_path}')
            return
        try:
            with open(file_path, 'rb') as f:
                data = orjson.loads(f.read())
        except orjson.JSONDecodeError as e:
            logger.error(f'Failed to parse predict db JSON: {file_path} - {e}')
            return
        except OSError as e:
            logger.error(f'Failed to read predict db: {file_path} - {e}')
            return
        if not isinstance(data, dict):
            logger.error(f'Invalid predict db format (expected dict): {file_path}')
            return
        for query, entries in data.items():
            ranked = self._rank(entries)
            if ranked:
                self._table[query] = ranked
        logger.info(f'Loaded predict db: {file_path} ({len(self._table)} queries)')

    @staticmethod
    def _rank(entries):
        if isinstance(entries, list):
            return [e for e in entries if isinstance(e, str) and e]
        if isinstance(entries, dict):
            weighted = [(text, weight) for text, weight in entries.items()
                        if text and isinstance(weight, (int, float)) and not isinstance(weight, bool)]
            # sorted() is stable, so equal weights keep file order
            return [text for text, _ in sorted(weighted, key=lambda item: -item[1])]
        return []

    def lookup(self, query):
        return list(self._table.get(query, []))

    def __len__(self):
        return len(self._table)


class PredictEngine:
    """
    Computes and caches the continuations of one query, and materializes
    them as a prediction segment at the end of the composition.
    """

    def __init__(self, db, max_candidates=0, max_iterations=0):
        self.db = db
        self.max_candidates = max_candidates
        self.max_iterations = max_iterations
        self.query = ''
        self.candidates = []

    def predict(self, ctx, query):
        '''
        Returns:
            bool: True if there is at least one continuation for `query`
        '''
        candidates = self.db.lookup(query)
        logger.debug(f'PredictEngine.predict("{query}") -> {len(candidates)} candidate(s)')
        if not candidates:
            self.clear()
            return False
        self.query = query
        self.candidates = candidates
        return True

    def clear(self):
        self.query = ''
        self.candidates = []

    def create_predict_segment(self, ctx):
        end = len(ctx.input)
        segment = Segment(end, end)
        segment.is_prediction = True
        texts = self.candidates
        if self.max_candidates > 0:
            texts = texts[:self.max_candidates]
        segment.candidates = [Candidate('prediction', text, end, end) for text in texts]
        if not ctx.composition.add_segment(segment):
            logger.warning(f'create_predict_segment: segment at {end} is not aligned with the composition')


class PredictEngineComponent:
    """
    Hands out one shared PredictEngine per predict db file.
    """

    def __init__(self, data_dirs=None):
        self.data_dirs = list(data_dirs) if data_dirs else []
        self._instances = dict()

    def resolve_path(self, db_name):
        if os.path.isabs(db_name):
            return db_name
        for data_dir in self.data_dirs:
            path = os.path.join(data_dir, db_name)
            if os.path.exists(path):
                return path
        if self.data_dirs:
            return os.path.join(self.data_dirs[0], db_name)
        return db_name

    def get_instance(self, schema):
        config = schema.config
        db_name = config.get_string('predictor/db', DEFAULT_PREDICT_DB)
        max_candidates = config.get_int('predictor/max_candidates', 0)
        max_iterations = config.get_int('predictor/max_iterations', 0)
        path = self.resolve_path(db_name)
        engine = self._instances.get(path)
        if engine is None:
            logger.info(f'PredictEngine: db={path}, max_candidates={max_candidates}, max_iterations={max_iterations}')
            engine = PredictEngine(PredictDb(path), max_candidates, max_iterations)
            self._instances[path] = engine
        return engine
