#!/usr/bin/env python3
# processor.py - Base class of the key-event processor chain

# Verdicts of process_key_event()
PROCESS_REJECTED = 0   # stop the chain, let the application have the key
PROCESS_ACCEPTED = 1   # stop the chain, the key was consumed
PROCESS_NOOP     = 2   # not handled, ask the next processor


class Processor:
    """
    A processor sees every key event of its session before the processors
    that follow it in the chain.
    """

    def __init__(self, session):
        self.session = session

    @property
    def context(self):
        return self.session.context if self.session is not None else None

    def process_key_event(self, key_event):
        return PROCESS_NOOP

    def close(self):
        pass
