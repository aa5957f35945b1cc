#!/usr/bin/env python3
# tests/helpers.py - Shared fixtures-in-code for the predictor tests

import os
import sys
from types import SimpleNamespace

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from context import STATUS_CONFIRMED, Candidate, Context, Segment
from predict_engine import PredictEngine
from schema import Schema


class DictDb:
    """In-memory stand-in for PredictDb."""

    def __init__(self, table=None):
        self.table = table or {}

    def lookup(self, query):
        return list(self.table.get(query, []))


class RecordingPredictEngine(PredictEngine):
    """PredictEngine over a dict that records predict()/clear() calls."""

    def __init__(self, table=None, max_candidates=0, max_iterations=0):
        super().__init__(DictDb(table), max_candidates, max_iterations)
        self.queries = []
        self.clear_count = 0

    def predict(self, ctx, query):
        self.queries.append(query)
        return super().predict(ctx, query)

    def clear(self):
        self.clear_count += 1
        super().clear()


def make_session(config=None, auto_commit=True, prediction=True):
    '''
    A bare session (context + schema) without any processor attached.
    '''
    session = SimpleNamespace(context=Context(), schema=Schema(config or {}))
    session.context.set_option('_auto_commit', auto_commit)
    session.context.set_option('prediction', prediction)
    return session


def add_text_segment(ctx, text, cand_type='phrase', confirmed=True):
    '''
    Append `text` to the input and cover it with one segment whose only
    candidate is the text itself.
    '''
    start = len(ctx.input)
    ctx.input += text
    seg = Segment(start, len(ctx.input))
    seg.candidates = [Candidate(cand_type, text, start, len(ctx.input))]
    if confirmed:
        seg.status = STATUS_CONFIRMED
    ctx.composition.append(seg)
    return seg


def add_prediction_segment(ctx, texts, selected_index=0, status=None):
    end = len(ctx.input)
    seg = Segment(end, end)
    seg.is_prediction = True
    seg.candidates = [Candidate('prediction', text, end, end) for text in texts]
    seg.selected_index = selected_index
    if status is not None:
        seg.status = status
    ctx.composition.append(seg)
    return seg
