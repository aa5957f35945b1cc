#!/usr/bin/env python3
"""
predictor.py - Processor that proposes and manages predicted continuations
予測変換（続きの候補）を提示・管理するプロセッサ

================================================================================
OVERVIEW / 概要
================================================================================

After the user commits (express editing) or confirms (fluid editing) some text,
the predictor asks the predict engine for likely continuations and appends them
to the composition as a zero-width "prediction" segment. Every later keystroke
is first offered to the predictor, which decides whether it consumes, confirms
or rejects the prediction, or lets normal input handling have it.

テキストが確定（または選択）された後、予測エンジンに続きの候補を問い合わせ、
幅ゼロの「予測」セグメントとして合成文字列の末尾に追加する。以降のキー入力は
まずこのプロセッサに渡され、予測の採用・棄却・通常処理への委譲を判断する。

================================================================================
FEEDBACK LOOP / フィードバックループ
================================================================================

    commit "今日" ──► on_context_update ──► predict("今日") ──► segment ["は", "も"]
         ▲                                                          │
         │                     select "は" (auto commit)            │
         └──────────────────────────────────────────────────────────┘

Accepting a prediction commits (or confirms) it, which triggers the next
prediction. The loop stops when the engine has nothing to offer, when the user
types something else, or when iteration_count reaches the engine's
max_iterations (0 = unlimited).

predict_and_update() announces the new segment through update_notifier while
state.self_updating is set, so on_context_update ignores its own announcement.

================================================================================
KEY HANDLING / キー処理 (first match wins)
================================================================================

    empty composition      → last_action = initiate, reset counters, pass
    BackSpace              → drop the prediction segment
    Escape                 → drop the prediction (or the whole input)
    Return (fluid editing) → commit without the prediction
    selector key / digit   → select a prediction on the current page
    anything else          → typing an initial abandons the prediction

================================================================================
"""

import contextlib
import logging

from context import STATUS_CONFIRMED, Segment
from key_event import BackSpace, Escape, KP_0, KP_9, KP_Enter, Return, XK_0, XK_9
from processor import PROCESS_ACCEPTED, PROCESS_NOOP, Processor
from schema import DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)

# last_action values
ACTION_UNSPECIFIED  = 'unspecified'
ACTION_INITIATE     = 'initiate'
ACTION_DELETE       = 'delete'
ACTION_SELECT       = 'select'

# commit types after which no prediction is made
NON_PREDICTABLE_COMMIT_TYPES = ('punct', 'raw', 'thru')


class PredictorState:
    """
    Per-predictor mutable state shared by the key handler and the callbacks.

    last_action : str
        Classification of the most recent key event handled.
    iteration_count : int
        Number of predictions accepted in a row; 0 after every reset.
    self_updating : bool
        True only while predict_and_update() announces its own segment.
    """

    def __init__(self):
        self.last_action = ACTION_UNSPECIFIED
        self.iteration_count = 0
        self.self_updating = False


class Predictor(Processor):
    """
    Key processor and context listener driving a PredictEngine.

    The three context connections are held in an ExitStack and released by
    close() (or by leaving a ``with`` block).
    """

    def __init__(self, session, predict_engine):
        super().__init__(session)
        self.predict_engine = predict_engine
        self.state = PredictorState()
        self.selector_keys = ''
        self.initial_letters = ''
        self.page_size = DEFAULT_PAGE_SIZE

        self._connections = contextlib.ExitStack()
        ctx = self.context
        if ctx is not None:
            for connection in (ctx.select_notifier.connect(self.on_select),
                               ctx.update_notifier.connect(self.on_context_update),
                               ctx.option_update_notifier.connect(self.on_option_update)):
                self._connections.callback(connection.disconnect)

        schema = session.schema if session is not None else None
        if schema is not None:
            self.selector_keys = schema.select_keys
            self.page_size = schema.page_size
            initials = schema.config.get_string('speller/initials')
            if initials is None:
                initials = schema.config.get_string('speller/alphabet', '')
            self.initial_letters = initials
        logger.debug(f'Predictor -- selector_keys: "{self.selector_keys}", initial_letters: "{self.initial_letters}"')

    def close(self):
        self._connections.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
        return False

    def _reset(self):
        self.predict_engine.clear()
        self.state.iteration_count = 0

    def _select_on_page(self, ctx, index):
        '''
        Select the `index`-th candidate of the page holding the current
        selection of the prediction segment.
        '''
        segment = ctx.composition[-1]
        page_start = (segment.selected_index // self.page_size) * self.page_size
        if index < self.page_size and ctx.select(page_start + index):
            self.state.last_action = ACTION_SELECT
            return True
        return False

    def process_key_event(self, key_event):
        ctx = self.context
        if self.predict_engine is None or ctx is None or not ctx.get_option('prediction'):
            return PROCESS_NOOP
        state = self.state
        keycode = key_event.keycode
        modifier = key_event.modifier
        composition = ctx.composition

        if not composition:
            state.last_action = ACTION_INITIATE
            if state.iteration_count > 0:
                self._reset()
        elif keycode == BackSpace:
            state.last_action = ACTION_DELETE
            if composition[-1].is_prediction:
                self.predict_engine.clear()
                composition.pop()
                state.iteration_count = max(0, state.iteration_count - 1)
                logger.debug(f'BackSpace: prediction dropped, iteration_count={state.iteration_count}')
                return PROCESS_ACCEPTED
        elif keycode == Escape:
            state.last_action = ACTION_DELETE
            if composition[-1].is_prediction:
                self._reset()
                if ctx.has_menu() and len(ctx.input) > 0:
                    composition[-1].clear()
                else:
                    ctx.clear()
                return PROCESS_ACCEPTED
        elif (keycode == Return or keycode == KP_Enter) and modifier == 0 \
                and not ctx.get_option('_auto_commit'):
            state.last_action = ACTION_SELECT
            if composition[-1].is_prediction:
                composition[-1].clear()
            self._reset()
            ctx.commit()
            return PROCESS_ACCEPTED
        elif self.selector_keys and 0x20 <= keycode < 0x7f and not modifier \
                and chr(keycode) in self.selector_keys:
            if composition[-1].is_prediction:
                index = self.selector_keys.index(chr(keycode))
                if self._select_on_page(ctx, index):
                    return PROCESS_ACCEPTED
        elif not self.selector_keys and not modifier \
                and (XK_0 <= keycode <= XK_9 or KP_0 <= keycode <= KP_9):
            if composition[-1].is_prediction:
                # '1'..'9' pick 0..8 and '0' picks 9
                index = (keycode % 0x10 + 9) % 10
                if self._select_on_page(ctx, index):
                    return PROCESS_ACCEPTED
        else:
            state.last_action = ACTION_UNSPECIFIED
            last = composition[-1]
            if last.is_prediction and key_event.is_printable() \
                    and chr(keycode) in self.initial_letters:
                last.clear()
                # only the segment right before is looked at
                if len(composition) > 1 and composition[-2].is_prediction:
                    self._reset()
                    ctx.commit()
        return PROCESS_NOOP

    def on_select(self, ctx):
        '''
        Fluid editing: the user confirmed a candidate; predict what follows.
        '''
        self.state.last_action = ACTION_SELECT
        if self.predict_engine is None or ctx is None or not ctx.get_option('prediction') \
                or ctx.get_option('_auto_commit'):
            return
        composition = ctx.composition
        if not composition:
            return
        segment = composition[-1]
        end = len(ctx.input)
        if segment.end != end or segment.end != segment.start:
            return
        if segment.status == STATUS_CONFIRMED and segment.is_prediction:
            candidate = segment.get_selected_candidate()
            if candidate is None:
                return
            self.state.iteration_count += 1
            composition.append(Segment(end, end))
            max_iterations = self.predict_engine.max_iterations
            if max_iterations > 0 and self.state.iteration_count >= max_iterations:
                logger.debug(f'on_select: max_iterations ({max_iterations}) reached')
                self._reset()
                return
            self.predict_and_update(ctx, candidate.text)
        elif len(composition) > 1 and composition[-2].status == STATUS_CONFIRMED:
            candidate = composition[-2].get_selected_candidate()
            if candidate is None or candidate.type == 'punct':
                self._reset()
                return
            self.predict_and_update(ctx, candidate.text)

    def on_option_update(self, ctx, option):
        if option != 'ascii_mode' or ctx is None or not ctx.get_option('prediction'):
            return
        self.state.iteration_count = 0
        composition = ctx.composition
        if composition and composition[-1].is_prediction:
            if ctx.get_option('_auto_commit'):
                composition.clear()
            else:
                composition.pop()

    def on_context_update(self, ctx):
        '''
        Express editing: something was just committed; predict what follows.
        '''
        state = self.state
        if state.self_updating or self.predict_engine is None or ctx is None \
                or not ctx.get_option('prediction') or not ctx.get_option('_auto_commit') \
                or ctx.composition or not ctx.commit_history \
                or state.last_action in (ACTION_DELETE, ACTION_INITIATE):
            return
        last_commit = ctx.commit_history.back()
        logger.debug(f'on_context_update: last commit {last_commit}')
        if last_commit.type in NON_PREDICTABLE_COMMIT_TYPES:
            self._reset()
            return
        if last_commit.type == 'prediction':
            max_iterations = self.predict_engine.max_iterations
            state.iteration_count += 1
            if max_iterations > 0 and state.iteration_count >= max_iterations:
                logger.debug(f'on_context_update: max_iterations ({max_iterations}) reached')
                self._reset()
                return
        self.predict_and_update(ctx, last_commit.text)

    def predict_and_update(self, ctx, query):
        if not self.predict_engine.predict(ctx, query):
            return
        self.predict_engine.create_predict_segment(ctx)
        self.state.self_updating = True
        try:
            ctx.update_notifier(ctx)
        finally:
            self.state.self_updating = False


class PredictorComponent:
    """
    Creates one Predictor per session, bound to the shared predict engine
    handed out by `engine_factory` for the session's schema.
    """

    def __init__(self, engine_factory):
        self.engine_factory = engine_factory

    def create(self, session):
        predict_engine = None
        if self.engine_factory is not None:
            predict_engine = self.engine_factory.get_instance(session.schema)
        return Predictor(session, predict_engine)
