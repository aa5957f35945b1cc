#!/usr/bin/env python3
"""
context.py - Input context shared by every processor of a session

================================================================================
OVERVIEW
================================================================================

The context is the mutable document model of one input session:

    input            raw characters typed so far ("nihon")
    composition      ordered segments spanning the input, each with candidates
    commit_history   bounded log of what was committed, with candidate types
    options          named boolean switches ("ascii_mode", "prediction", ...)

Every mutation that other components care about is announced through one of
four notifiers:

    select_notifier(ctx)                 a candidate was selected/confirmed
    update_notifier(ctx)                 input or composition changed
    option_update_notifier(ctx, name)    an option was set
    commit_notifier(ctx)                 the composition is being committed

Notifications are dispatched synchronously, in connection order, on the thread
that mutated the context. A handler that mutates the context from inside a
notification therefore re-enters every subscriber (including itself).

    ┌───────────┐  select()/commit()/clear()  ┌──────────────────────┐
    │ processor │ ──────────────────────────► │ Context              │
    └───────────┘                             │  └─ notifiers ──┐    │
          ▲                                   └─────────────────┼────┘
          └──────────────── handler(ctx) ◄────────────────────┘

================================================================================
"""

import logging

logger = logging.getLogger(__name__)

# Segment status, ordered
STATUS_VOID         = 0
STATUS_GUESS        = 1
STATUS_SELECTED     = 2
STATUS_CONFIRMED    = 3

MAX_COMMIT_RECORDS = 20


class Connection:
    """
    Handle returned by Signal.connect(); disconnect() is idempotent.
    """

    def __init__(self, signal, slot):
        self._signal = signal
        self._slot = slot

    def connected(self):
        return self._signal is not None

    def disconnect(self):
        if self._signal is None:
            return
        self._signal._connections.remove(self)
        self._signal = None

    def __call__(self, *args):
        return self._slot(*args)


class Signal:
    """
    Ordered list of subscribers called synchronously with the emitted args.

    Emission iterates over a snapshot, so a slot may connect or disconnect
    during dispatch; a connection dropped mid-dispatch is not called again.
    """

    def __init__(self):
        self._connections = []

    def connect(self, slot):
        connection = Connection(self, slot)
        self._connections.append(connection)
        return connection

    def __len__(self):
        return len(self._connections)

    def __call__(self, *args):
        for connection in list(self._connections):
            if connection.connected():
                connection(*args)


class Candidate:
    def __init__(self, cand_type, text, start=0, end=0):
        self.type = cand_type
        self.text = text
        self.start = start
        self.end = end

    def __repr__(self):
        return f'Candidate({self.type!r}, {self.text!r}, {self.start}, {self.end})'


class Segment:
    """
    A contiguous span [start, end) of the input with its candidate menu.

    is_prediction marks segments created by the predict engine; it is dropped
    together with the other tags by clear().
    """

    def __init__(self, start=0, end=0):
        self.start = start
        self.end = end
        self.status = STATUS_VOID
        self.tags = set()
        self.is_prediction = False
        self.candidates = []
        self.selected_index = 0

    def has_menu(self):
        return len(self.candidates) > 0

    def get_candidate_at(self, index):
        if 0 <= index < len(self.candidates):
            return self.candidates[index]
        return None

    def get_selected_candidate(self):
        return self.get_candidate_at(self.selected_index)

    def select(self, index):
        if self.get_candidate_at(index) is None:
            return False
        self.selected_index = index
        return True

    def clear(self):
        self.status = STATUS_VOID
        self.tags.clear()
        self.is_prediction = False
        self.candidates = []
        self.selected_index = 0

    def __repr__(self):
        flag = ' prediction' if self.is_prediction else ''
        return f'<Segment [{self.start}, {self.end}) status={self.status}{flag}>'


class Composition(list):
    """
    Ordered list of segments covering the input from left to right.
    """

    def get_current_start_position(self):
        return self[-1].start if self else 0

    def get_current_end_position(self):
        return self[-1].end if self else 0

    def add_segment(self, segment):
        '''
        Add a segment that starts where the last segment starts.

        The longer of the two wins; on equal length the new segment's
        tags, prediction flag and (if the old one had none) candidates are
        merged into the existing one.

        Returns:
            bool: False if the segment is not left-aligned with the last one
        '''
        if segment.start != self.get_current_start_position():
            return False
        if not self:
            self.append(segment)
            return True
        last = self[-1]
        if last.end < segment.end:
            self[-1] = segment
        elif last.end == segment.end:
            last.tags |= segment.tags
            last.is_prediction = last.is_prediction or segment.is_prediction
            if not last.candidates and segment.candidates:
                last.candidates = list(segment.candidates)
                last.selected_index = segment.selected_index
        return True

    def forward(self):
        '''
        Open an empty segment after the last one, unless the last one is
        already empty.
        '''
        if not self or self[-1].start == self[-1].end:
            return False
        end = self[-1].end
        self.append(Segment(end, end))
        return True

    def get_commit_text(self, input_text):
        result = ''
        end = 0
        for seg in self:
            cand = seg.get_selected_candidate()
            if cand is not None:
                result += cand.text
                end = cand.end
            else:
                result += input_text[seg.start:seg.end]
                end = seg.end
        if len(input_text) > end:
            result += input_text[end:]
        return result


class CommitRecord:
    def __init__(self, record_type, text):
        self.type = record_type
        self.text = text

    def __repr__(self):
        return f'CommitRecord({self.type!r}, {self.text!r})'


class CommitHistory(list):
    """
    Bounded log of commit records, newest last.
    """

    def push_record(self, record):
        self.append(record)
        if len(self) > MAX_COMMIT_RECORDS:
            del self[0]

    def push(self, composition, input_text):
        '''
        Record a composition about to be committed.

        Adjacent candidates of the same type are joined into one record
        until a confirmed segment terminates the run; spans without a
        selected candidate are recorded as "raw" (empty spans are skipped).
        '''
        last = None
        end = 0
        for seg in composition:
            cand = seg.get_selected_candidate()
            if cand is not None:
                if last is not None and last.type == cand.type:
                    last.text += cand.text
                else:
                    last = CommitRecord(cand.type, cand.text)
                    self.push_record(last)
                if seg.status >= STATUS_CONFIRMED:
                    last = None
                end = cand.end
            else:
                self._push_raw(input_text[seg.start:seg.end])
                last = None
                end = seg.end
        if len(input_text) > end:
            self._push_raw(input_text[end:])

    def _push_raw(self, text):
        if text:
            self.push_record(CommitRecord('raw', text))

    def back(self):
        return self[-1] if self else None


def echo_translate(text, start, end):
    '''
    Default translation: the typed text itself as a single candidate.
    '''
    return [Candidate('phrase', text, start, end)]


class Context:
    """
    Mutable input state of one session plus its change notifiers.
    """

    def __init__(self, translate=None):
        self.input = ''
        self.composition = Composition()
        self.commit_history = CommitHistory()
        self._options = dict()
        self._translate = translate if translate else echo_translate

        self.select_notifier = Signal()
        self.update_notifier = Signal()
        self.option_update_notifier = Signal()
        self.commit_notifier = Signal()

    # ─── Options ──────────────────────────────────────────────────────────

    def get_option(self, name):
        return self._options.get(name, False)

    def set_option(self, name, value):
        self._options[name] = value
        logger.debug(f'set_option({name}, {value})')
        self.option_update_notifier(self, name)

    # ─── Queries ──────────────────────────────────────────────────────────

    def is_composing(self):
        return bool(self.input) or bool(self.composition)

    def has_menu(self):
        return bool(self.composition) and self.composition[-1].has_menu()

    def get_selected_candidate(self):
        if not self.composition:
            return None
        return self.composition[-1].get_selected_candidate()

    def get_commit_text(self):
        return self.composition.get_commit_text(self.input)

    # ─── Mutations ────────────────────────────────────────────────────────

    def select(self, index):
        '''
        Select candidate `index` of the last segment and notify.

        Returns:
            bool: False if there is no such candidate
        '''
        if not self.composition:
            return False
        seg = self.composition[-1]
        if not seg.select(index):
            return False
        seg.status = STATUS_SELECTED
        logger.debug(f'select({index}) -> {seg.get_selected_candidate()}')
        self.select_notifier(self)
        return True

    def confirm_current_selection(self):
        if not self.composition:
            return False
        self.composition[-1].status = STATUS_SELECTED
        self.select_notifier(self)
        return True

    def commit(self):
        if not self.is_composing():
            return False
        self.commit_history.push(self.composition, self.input)
        self.commit_notifier(self)
        self.clear()
        return True

    def clear(self):
        self.input = ''
        self.composition.clear()
        self.update_notifier(self)

    def push_input(self, text):
        self.input += text
        self._compose()
        self.update_notifier(self)

    def pop_input(self, length=1):
        if length <= 0 or len(self.input) < length:
            return False
        self.input = self.input[:-length]
        self._compose()
        self.update_notifier(self)
        return True

    def _compose(self):
        '''
        Drop trailing segments that are unconfirmed or reach past the input,
        then cover the rest of the input with one freshly translated segment.
        '''
        comp = self.composition
        length = len(self.input)
        while comp and (comp[-1].status < STATUS_CONFIRMED or comp[-1].end > length):
            comp.pop()
        start = comp.get_current_end_position()
        if length > start:
            seg = Segment(start, length)
            seg.status = STATUS_GUESS
            seg.candidates = self._translate(self.input[start:], start, length)
            comp.append(seg)
