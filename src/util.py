import codecs
import json
import os
import site
import sys
from gi.repository import GLib
import logging

logger = logging.getLogger(__name__)

NAME_TO_LOGGING_LEVEL = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}


def get_package_name():
    '''
    returns 'ibus-predict'
    '''
    return 'ibus-predict'


def get_version():
    return '0.1.0'


def get_datadir():
    '''
    Return the path to the data directory under user-independent (central)
    location (= not under the HOME)
    '''
    try:
        # generated at installation time
        import paths
        return paths.INSTALL_ROOT
    except ImportError:
        pass
    source_tree = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'data')
    if os.path.exists(os.path.join(source_tree, 'config.json')):
        return source_tree
    # pip install: data files go to <prefix>/share/ibus-predict
    for prefix in (sys.prefix, site.getuserbase()):
        datadir = os.path.join(prefix, 'share', get_package_name())
        if os.path.exists(os.path.join(datadir, 'config.json')):
            return datadir
    return source_tree


def get_default_config_path():
    '''
    Return the path to the default config file in the system installation.
    This is the config.json that gets copied to user's home on first run.
    '''
    return os.path.join(get_datadir(), 'config.json')


def get_localedir():
    return '/usr/local/share/locale'


def get_user_config_dir():
    '''
    Return the path to the config directory under $HOME.
    Typically, it would be $HOME/.config/ibus-predict
    '''
    return os.path.join(GLib.get_user_config_dir(), get_package_name())


def get_data_dirs():
    '''
    Directories searched for data files such as the predict db,
    the user's own directory first.
    '''
    return [get_user_config_dir(), get_datadir()]


def _merge_defaults(config_data, default_config, prefix=''):
    '''
    Fill keys missing from `config_data` (or holding a value whose type
    differs from the default) with the default value, one level of nested
    sections deep.

    Returns:
        list: one message per replaced key
    '''
    messages = []
    for key, default_value in default_config.items():
        path = prefix + key
        if key not in config_data:
            messages.append(f'The key "{path}" was not found in config.json. Using the default value')
            config_data[key] = default_value
        elif type(config_data[key]) != type(default_value):
            messages.append(f'Type mismatch for the key "{path}" between the user and the default config.json. Using the default value')
            config_data[key] = default_value
        elif isinstance(default_value, dict) and not prefix:
            messages += _merge_defaults(config_data[key], default_value, path + '/')
    return messages


def get_config_data():
    '''
    Load config.json from $HOME/.config/ibus-predict, copying the default one
    there when it is missing. Keys missing from the user's file, or holding a
    value of a different type than the default, are taken from the default.

    Returns:
        tuple: (config_data, warnings_string) where warnings_string is empty if no warnings
    '''
    user_config_dir = get_user_config_dir()
    configfile_path = os.path.join(user_config_dir, 'config.json')
    default_config_path = get_default_config_path()
    with codecs.open(default_config_path, encoding='utf-8') as f:
        default_config = json.load(f)

    if not os.path.exists(configfile_path):
        message = f'config.json is not found under {user_config_dir} . Copying the default config.json from {default_config_path} ..'
        logger.warning(message)
        os.makedirs(user_config_dir, exist_ok=True)
        with open(configfile_path, 'w', encoding='utf-8') as f:
            json.dump(default_config, f, ensure_ascii=False, indent=2)
        return default_config, message
    try:
        with codecs.open(configfile_path, encoding='utf-8') as f:
            config_data = json.load(f)
    except json.decoder.JSONDecodeError as e:
        logger.error(f'Malformed config.json under {user_config_dir}: {e}')
        logger.error(f'Falling back to (without copying) {default_config_path}')
        return default_config, ''

    messages = _merge_defaults(config_data, default_config)
    for message in messages:
        logger.warning(message)
    return config_data, '\n'.join(messages)


def get_logging_level(config):
    '''
    Returns the logging level name from the config; WARNING when it is
    absent or not recognized.
    '''
    level = config.get('logging_level', 'WARNING')
    if level not in NAME_TO_LOGGING_LEVEL:
        logger.warning(f'Specified logging level {level} is not recognized. Using the default WARNING level.')
        level = 'WARNING'
    return level
