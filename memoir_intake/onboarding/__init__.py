"""
Onboarding wizard: entry routing, per-path step tables, answer shapes and the
guarded state machine that moves a draft from the entry question to a
completed registration.
"""
