"""ALSA-JACK Patchbay: bridge ALSA sound devices into a JACK audio graph."""
