#!/usr/bin/env python3

"""
Null Audio Plugin

Serves as a base class for other Audio plugins.  Can be used on its own if no
sound is required.

The CPU only ever says whether the buzzer should be sounding, so the only
thing an Audio plugin has to do is follow that gate.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"


class Audio:
    def __init__(self):
        # Buzzer should be disabled (not playing sounds) by default
        self.buzzer_enabled = False

    def enable_buzzer(self, enabled):
        # The buzzer should play sounds while the sound timer is >0
        self.buzzer_enabled = enabled

    def shutdown(self):
        pass
