from context import STATUS_SELECTED
from key_event import Escape, KeyEvent, SHIFT_MASK, CONTROL_MASK, ALT_MASK, SUPER_MASK
from predict_engine import PredictEngineComponent
from predictor import PredictorComponent
from schema import Config, Schema
from session import Session
import util

import logging

import gi
gi.require_version('IBus', '1.0')
from gi.repository import IBus
# http://lazka.github.io/pgi-docs/IBus-1.0/index.html

logger = logging.getLogger(__name__)

# IBus.ModifierType bits forwarded to the processors
FORWARDED_MODIFIERS = SHIFT_MASK | CONTROL_MASK | ALT_MASK | SUPER_MASK

# Direct (ASCII) input and predictive input
INPUT_MODE_NAMES = ('A', '予')


class EnginePredict(IBus.Engine):
    '''
    http://lazka.github.io/pgi-docs/IBus-1.0/classes/Engine.html

    Hosts one Session and mirrors its context into the preedit, the lookup
    table and committed text.
    '''
    __gtype_name__ = 'EnginePredict'

    def __init__(self):
        super().__init__()
        self._mode = INPUT_MODE_NAMES[1]
        self._load_configs()

        self._schema = Schema(Config(self._config))
        self._predict_engine_component = PredictEngineComponent(util.get_data_dirs())
        self._session = Session(self._schema, PredictorComponent(self._predict_engine_component))
        context = self._session.context
        self._update_connection = context.update_notifier.connect(self._context_updated_cb)
        self._commit_connection = context.commit_notifier.connect(self._context_commit_cb)

        self._lookup_table = IBus.LookupTable.new(self._schema.page_size, 0, True, False)
        self._lookup_table.set_orientation(IBus.Orientation.VERTICAL)

        self._init_props()
        logger.debug('Engine init -- done')

    def _load_configs(self):
        '''
        Loads config.json and applies its logging level.
        The logging level would be set to WARNING if it's absent in the config JSON.
        '''
        self._config, warnings = util.get_config_data()
        level = util.get_logging_level(self._config)
        logger.info(f'logging_level: {level}')
        logging.getLogger().setLevel(util.NAME_TO_LOGGING_LEVEL[level])
        if warnings:
            logger.debug(f'config.json loaded with warnings:\n{warnings}')

    def _init_props(self):
        '''
        Creates the GUI menu list (typically top-right corner).

        http://lazka.github.io/pgi-docs/IBus-1.0/classes/PropList.html
        http://lazka.github.io/pgi-docs/IBus-1.0/classes/Property.html
        '''
        self._prop_list = IBus.PropList()
        self._input_mode_prop = IBus.Property(
            key='InputMode',
            prop_type=IBus.PropType.MENU,
            symbol=IBus.Text.new_from_string(self._mode),
            label=IBus.Text.new_from_string(f"Input mode ({self._mode})"),
            icon=None,
            tooltip=None,
            sensitive=True,
            visible=True,
            state=IBus.PropState.UNCHECKED,
            sub_props=None)
        sub_props = IBus.PropList()
        for key, label, mode in (('InputMode.Direct', 'Direct (A)', 'A'),
                                 ('InputMode.Predictive', 'Predictive (予)', '予')):
            sub_props.append(IBus.Property(
                key=key,
                prop_type=IBus.PropType.RADIO,
                label=IBus.Text.new_from_string(label),
                icon=None,
                tooltip=None,
                sensitive=True,
                visible=True,
                state=IBus.PropState.CHECKED if mode == self._mode else IBus.PropState.UNCHECKED,
                sub_props=None))
        self._input_mode_prop.set_sub_props(sub_props)
        self._prop_list.append(self._input_mode_prop)

    def do_focus_in(self):
        self.register_properties(self._prop_list)
        self._update()

    def do_focus_out(self):
        self._reset_context()

    def do_reset(self):
        self._reset_context()

    def do_destroy(self):
        self._update_connection.disconnect()
        self._commit_connection.disconnect()
        self._session.close()
        IBus.Engine.do_destroy(self)

    def do_property_activate(self, prop_name, state):
        logger.info(f'property_activate({prop_name}, {state})')
        if prop_name.startswith('InputMode.') and state == IBus.PropState.CHECKED:
            mode = {
                'InputMode.Direct': 'A',
                'InputMode.Predictive': '予',
            }.get(prop_name, 'A')
            self.set_mode(mode)

    def set_mode(self, mode):
        if mode not in INPUT_MODE_NAMES or self._mode == mode:
            return False
        logger.debug(f'set_mode({mode})')
        self._mode = mode
        # the predictor drops any pending prediction on this switch
        self._session.context.set_option('ascii_mode', mode == 'A')
        self._input_mode_prop.set_symbol(IBus.Text.new_from_string(self._mode))
        self._input_mode_prop.set_label(IBus.Text.new_from_string(f"Input mode ({self._mode})"))
        self.update_property(self._input_mode_prop)
        self._update()
        return True

    def do_process_key_event(self, keyval, keycode, state):
        if state & IBus.ModifierType.RELEASE_MASK:
            return False
        key_event = KeyEvent(keyval, state & FORWARDED_MODIFIERS)
        handled = self._session.process_key_event(key_event)
        self._update()
        return handled

    def _reset_context(self):
        '''
        Escape first, so that the predictor treats the reset as a deletion
        and does not predict again once the composition is gone.
        '''
        context = self._session.context
        if not context.is_composing():
            return
        self._session.process_key_event(KeyEvent(Escape))
        if context.is_composing():
            context.clear()
        self._update()

    def _context_updated_cb(self, context):
        self._update()

    def _context_commit_cb(self, context):
        text = context.get_commit_text()
        logger.debug(f'commit: "{text}"')
        if text:
            self.commit_text(IBus.Text.new_from_string(text))

    def _update(self):
        self._update_preedit()
        self._update_lookup_table()

    def _get_preedit_string(self):
        context = self._session.context
        preedit = ''
        end = 0
        for segment in context.composition:
            candidate = segment.get_selected_candidate()
            if segment.status >= STATUS_SELECTED and candidate is not None:
                preedit += candidate.text
            elif not segment.is_prediction:
                preedit += context.input[segment.start:segment.end]
            end = segment.end
        return preedit + context.input[end:]

    def _update_preedit(self):
        preedit = self._get_preedit_string()
        if not preedit:
            self.hide_preedit_text()
            return
        text = IBus.Text.new_from_string(preedit)
        attrs = IBus.AttrList()
        attrs.append(IBus.Attribute.new(IBus.AttrType.UNDERLINE, IBus.AttrUnderline.SINGLE, 0, len(preedit)))
        text.set_attributes(attrs)
        self.update_preedit_text_with_mode(text, len(preedit), True, IBus.PreeditFocusMode.COMMIT)

    def _update_lookup_table(self):
        context = self._session.context
        if not context.has_menu():
            self.hide_lookup_table()
            return
        segment = context.composition[-1]
        self._lookup_table.clear()
        for candidate in segment.candidates:
            self._lookup_table.append_candidate(IBus.Text.new_from_string(candidate.text))
        self._lookup_table.set_cursor_pos(segment.selected_index)
        self.update_lookup_table(self._lookup_table, True)
