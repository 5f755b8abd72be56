from .midi_to_mml import run

raise SystemExit(run())
