#!/usr/bin/env python3
# editor.py - Normal input handling that runs after the predictor

import logging

from key_event import BackSpace, Escape, KP_Enter, Return, space
from processor import PROCESS_ACCEPTED, PROCESS_NOOP, Processor

logger = logging.getLogger(__name__)


class Editor(Processor):
    """
    Minimal editor: printable keys build up the input, space confirms the
    current candidate, BackSpace/Escape/Return edit, clear and commit.

    Whether a confirmed segment is committed right away (express editing)
    or left in the composition (fluid editing) is up to the session's
    selection handler, driven by the "_auto_commit" option.
    """

    def process_key_event(self, key_event):
        ctx = self.context
        if ctx is None or key_event.ctrl() or key_event.alt() or key_event.super():
            return PROCESS_NOOP
        keycode = key_event.keycode
        if key_event.is_printable():
            if ctx.get_option('ascii_mode'):
                return PROCESS_NOOP
            ctx.push_input(chr(keycode))
            return PROCESS_ACCEPTED
        if not ctx.is_composing():
            return PROCESS_NOOP
        if keycode == space:
            ctx.confirm_current_selection()
            return PROCESS_ACCEPTED
        if keycode == BackSpace:
            if ctx.pop_input():
                return PROCESS_ACCEPTED
            # nothing typed is left; drop whatever trails the composition
            ctx.clear()
            return PROCESS_ACCEPTED
        if keycode == Escape:
            ctx.clear()
            return PROCESS_ACCEPTED
        if keycode in (Return, KP_Enter):
            logger.debug(f'Editor: commit "{ctx.get_commit_text()}"')
            ctx.commit()
            return PROCESS_ACCEPTED
        return PROCESS_NOOP
