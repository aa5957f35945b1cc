#!/usr/bin/env python3
# key_event.py - Decoded key event and the keysyms the processors look at

# X11 keysyms (same values as IBus.KEY_*)
BackSpace   = 0xff08
Tab         = 0xff09
Return      = 0xff0d
Escape      = 0xff1b
KP_Enter    = 0xff8d
KP_0        = 0xffb0
KP_9        = 0xffb9
space       = 0x0020
XK_0        = 0x0030
XK_9        = 0x0039

# modifier mask bits (same positions as IBus.ModifierType)
SHIFT_MASK      = 1 << 0
CONTROL_MASK    = 1 << 2
ALT_MASK        = 1 << 3
SUPER_MASK      = 1 << 26
RELEASE_MASK    = 1 << 30

NAME_TO_MODIFIER = {
    'Shift': SHIFT_MASK,
    'Control': CONTROL_MASK,
    'Alt': ALT_MASK,
    'Super': SUPER_MASK,
    'Release': RELEASE_MASK,
}

NAME_TO_KEYCODE = {
    'BackSpace': BackSpace,
    'Tab': Tab,
    'Return': Return,
    'Escape': Escape,
    'KP_Enter': KP_Enter,
    'space': space,
}
for _i in range(10):
    NAME_TO_KEYCODE[f'KP_{_i}'] = KP_0 + _i


class KeyEvent:
    """
    A key event as seen by the processor chain: keysym plus modifier mask.

    Only presses are delivered by the IBus host; the RELEASE bit is kept so
    that events parsed from text round out the representation.
    """

    def __init__(self, keycode, modifier=0):
        self.keycode = keycode
        self.modifier = modifier

    def shift(self):
        return bool(self.modifier & SHIFT_MASK)

    def ctrl(self):
        return bool(self.modifier & CONTROL_MASK)

    def alt(self):
        return bool(self.modifier & ALT_MASK)

    def super(self):
        return bool(self.modifier & SUPER_MASK)

    def release(self):
        return bool(self.modifier & RELEASE_MASK)

    def is_printable(self):
        '''
        True for printable ASCII other than space, i.e. 0x21..0x7e.
        '''
        return 0x20 < self.keycode < 0x7f

    @classmethod
    def parse(cls, representation):
        '''
        Build a KeyEvent from a string such as "Control+a", "BackSpace" or
        "Shift+Release+KP_Enter". The key is the last "+"-separated part;
        a single character stands for its own code point.

        Raises:
            ValueError: if a modifier or key name is not recognized
        '''
        if not representation:
            raise ValueError('empty key representation')
        if representation == '+':
            parts = ['+']
        elif representation.endswith('++'):
            # "Control++" is Control plus the "+" key itself
            parts = representation[:-2].split('+') + ['+']
        else:
            parts = representation.split('+')
        modifier = 0
        for name in parts[:-1]:
            if name not in NAME_TO_MODIFIER:
                raise ValueError(f'unknown modifier: {name}')
            modifier |= NAME_TO_MODIFIER[name]
        key = parts[-1]
        if key in NAME_TO_KEYCODE:
            keycode = NAME_TO_KEYCODE[key]
        elif len(key) == 1 and 0x20 <= ord(key) < 0x7f:
            keycode = ord(key)
        else:
            raise ValueError(f'unknown key name: {key}')
        return cls(keycode, modifier)

    def __eq__(self, other):
        if not isinstance(other, KeyEvent):
            return NotImplemented
        return self.keycode == other.keycode and self.modifier == other.modifier

    def __hash__(self):
        return hash((self.keycode, self.modifier))

    def __repr__(self):
        return f'KeyEvent(0x{self.keycode:x}, 0x{self.modifier:x})'
