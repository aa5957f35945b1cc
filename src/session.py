#!/usr/bin/env python3
# session.py - One input session: context, schema and the processor chain

import logging

from context import STATUS_CONFIRMED, Context
from editor import Editor
from processor import PROCESS_ACCEPTED, PROCESS_NOOP

logger = logging.getLogger(__name__)


class Session:
    """
    Owns the context of one input session and runs every key event through
    the processor chain [predictor, editor], stopping at the first processor
    that does not answer PROCESS_NOOP.

    The session's own selection handler is connected before any processor
    exists, so it always runs first: it confirms the selected segment and
    either commits (express editing) or opens the next segment (fluid
    editing). The predictor's handler then sees the result.
    """

    def __init__(self, schema, predictor_component=None, translate=None):
        self.schema = schema
        self.context = Context(translate)
        self._select_connection = self.context.select_notifier.connect(self._on_select)
        self.context.set_option('_auto_commit', schema.auto_commit)
        self.context.set_option('prediction', schema.prediction)

        self.processors = []
        if predictor_component is not None:
            self.processors.append(predictor_component.create(self))
        self.processors.append(Editor(self))

    def process_key_event(self, key_event):
        '''
        Returns:
            bool: True if a processor consumed the key event
        '''
        for processor in self.processors:
            result = processor.process_key_event(key_event)
            if result != PROCESS_NOOP:
                logger.debug(f'{key_event} handled by {type(processor).__name__}: {result}')
                return result == PROCESS_ACCEPTED
        return False

    def _on_select(self, ctx):
        composition = ctx.composition
        if not composition:
            return
        segment = composition[-1]
        segment.status = STATUS_CONFIRMED
        if segment.end == len(ctx.input) and ctx.get_option('_auto_commit'):
            ctx.commit()
        else:
            composition.forward()

    def close(self):
        for processor in self.processors:
            processor.close()
        self.processors = []
        self._select_connection.disconnect()
