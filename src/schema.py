#!/usr/bin/env python3
# schema.py - Read-only view of the engine configuration

import logging

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 5


class Config(dict):
    """
    Nested config data (as loaded from config.json) with slash-separated
    path lookup, e.g. config.get_string('speller/initials').
    """

    def get_item(self, path):
        node = self
        for key in path.split('/'):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node

    def get_string(self, path, default=None):
        value = self.get_item(path)
        return value if isinstance(value, str) else default

    def get_bool(self, path, default=None):
        value = self.get_item(path)
        return value if isinstance(value, bool) else default

    def get_int(self, path, default=None):
        value = self.get_item(path)
        # bool is a subclass of int; a JSON true is not a number here
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return default


class Schema:
    '''
    Settings the processors read once at construction.
    '''

    def __init__(self, config=None):
        self.config = config if isinstance(config, Config) else Config(config or {})
        self.select_keys = self.config.get_string('menu/alternative_select_keys', '')
        page_size = self.config.get_int('menu/page_size', DEFAULT_PAGE_SIZE)
        if page_size <= 0:
            logger.warning(f'menu/page_size must be positive (got {page_size}); using {DEFAULT_PAGE_SIZE}')
            page_size = DEFAULT_PAGE_SIZE
        self.page_size = page_size
        self.auto_commit = self.config.get_bool('editor/auto_commit', True)
        self.prediction = self.config.get_bool('predictor/enabled', True)
        logger.debug(f'Schema -- select_keys: "{self.select_keys}", page_size: {self.page_size}, '
                     f'auto_commit: {self.auto_commit}, prediction: {self.prediction}')
