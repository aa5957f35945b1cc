"""
main.py - Entry point for the ibus-predict IME engine
ibus-predict IMEエンジンのエントリーポイント

================================================================================
WHAT THIS FILE DOES / このファイルの役割
================================================================================

    IBus daemon starts this script (or the user runs it standalone)
    IBusデーモンがこのスクリプトを起動（またはスタンドアロン実行）
            ↓
    This script registers the engine factory with IBus
    このスクリプトがエンジンファクトリをIBusに登録
            ↓
    engine.py (EnginePredict) handles all keyboard input
    engine.py（EnginePredict）が全てのキーボード入力を処理

================================================================================
FILE RELATIONSHIPS / ファイルの関係
================================================================================

    main.py (THIS FILE)          ← Entry point, IBus registration
        │
        └──► engine.py           ← IBus glue: preedit, lookup table, commit
                  │
                  └──► session.py          (context + processor chain)
                           ├──► predictor.py      (prediction state machine)
                           │        └──► predict_engine.py  (prediction table)
                           ├──► editor.py         (normal input)
                           └──► context.py        (composition, notifiers)

================================================================================
"""

from engine import EnginePredict
import util

import getopt
import gettext
import os
import locale
import logging
import sys
from shutil import copyfile

import gi
gi.require_version('IBus', '1.0')
from gi.repository import GLib, GObject, IBus


ENGINE_NAME = "predict"
BUS_NAME = "org.freedesktop.IBus.Predict"


class IMApp:
    """
    IBus Application Wrapper - Manages the connection between the engine and IBus.
    IBusアプリケーションラッパー - エンジンとIBus間の接続を管理。

    exec_by_ibus=True (Normal Operation):
        IBus daemon starts us, so we just request our D-Bus name.
    exec_by_ibus=False (Standalone/Development):
        We register an IBus.Component and IBus.EngineDesc ourselves, which is
        useful for testing without restarting the IBus daemon.
    """

    def __init__(self, exec_by_ibus: bool) -> None:
        if not isinstance(exec_by_ibus, bool):
            raise TypeError("The `exec_by_ibus` parameter must be a boolean value.")
        self.exec_by_ibus = exec_by_ibus

        self._mainloop = GLib.MainLoop()
        self._bus = IBus.Bus()
        # http://lazka.github.io/pgi-docs/GObject-2.0/classes/Object.html#GObject.Object.connect
        self._bus.connect("disconnected", self._bus_disconnected_cb)
        self._factory = IBus.Factory(self._bus)
        self._factory.add_engine(ENGINE_NAME, GObject.type_from_name("EnginePredict"))
        if exec_by_ibus:
            # http://lazka.github.io/pgi-docs/IBus-1.0/classes/Bus.html#IBus.Bus.request_name
            self._bus.request_name(BUS_NAME, 0)
        else:
            self._register_component()

    def _register_component(self):
        '''
        Standalone mode: describe the engine to IBus and make it the global engine.
        '''
        component = IBus.Component(
            name=BUS_NAME,
            description="Predict",
            version=util.get_version(),
            license="MIT",
            author="ibus-predict developers",
            textdomain=util.get_package_name())
        component.add_engine(IBus.EngineDesc(
            name=ENGINE_NAME,
            longname="Predict",
            description="Predictive text input",
            language="en",
            license="MIT",
            author="ibus-predict developers",
            icon=util.get_package_name(),
            layout="default"))
        self._bus.register_component(component)
        self._bus.set_global_engine_async(ENGINE_NAME, -1, None, None, None)

    def run(self):
        self._mainloop.run()

    def _bus_disconnected_cb(self, bus=None):
        self._mainloop.quit()


USAGE = """\
Usage: ibus-engine-predict [OPTION]...
  -i, --ibus         started by the IBus daemon
  -d, --daemonize    fork into the background
  -h, --help         print this help and exit"""


def print_help(v: int = 0) -> None:
    print(USAGE)
    sys.exit(v)


def prepare_user_config_dir() -> str:
    '''
    Create ~/.config/ibus-predict (private to the user) and seed it with
    the installed config.json on first run.
    ~/.config/ibus-predict を作成し、初回は既定の config.json をコピーする。
    '''
    user_config_dir = util.get_user_config_dir()
    os.makedirs(user_config_dir, 0o700, True)
    config_path = os.path.join(user_config_dir, 'config.json')
    if not os.path.exists(config_path):
        copyfile(util.get_default_config_path(), config_path)
    return user_config_dir


def main():
    """
    Prepare ~/.config/ibus-predict (config.json, log file), parse the command
    line and run the engine.
    ~/.config/ibus-predict を準備し、コマンドラインを解析してエンジンを起動。
    """
    os.umask(0o077)
    user_config_dir = prepare_user_config_dir()

    # DEBUG until the engine applies logging_level from config.json
    logging.basicConfig(filename=os.path.join(user_config_dir, util.get_package_name() + '.log'),
                        level=logging.DEBUG,
                        format='%(asctime)s %(levelname)-8s %(message)s',
                        datefmt='%Y-%m-%d %H:%M:%S')
    logger = logging.getLogger()
    logger.info(f'user config dir: {user_config_dir}, data dir: {util.get_datadir()}')

    # getopt rather than argparse: IBus passes its own arguments
    try:
        opts, _ = getopt.getopt(sys.argv[1:], 'ihd', ['ibus', 'help', 'daemonize'])
    except getopt.GetoptError as err:
        logger.error(err)
        sys.exit(1)

    exec_by_ibus = False
    daemonize = False
    for o, _ in opts:
        if o in ('-h', '--help'):
            print_help(0)
        elif o in ('-d', '--daemonize'):
            daemonize = True
        elif o in ('-i', '--ibus'):
            exec_by_ibus = True
    logger.info(f'exec_by_ibus: {exec_by_ibus}, daemonize: {daemonize}')

    if daemonize and os.fork():
        sys.exit()
    IMApp(exec_by_ibus).run()


if __name__ == "__main__":
    try:
        locale.bindtextdomain(util.get_package_name(), util.get_localedir())
    except AttributeError:
        # not available on every platform
        pass
    gettext.bindtextdomain(util.get_package_name(), util.get_localedir())
    main()
