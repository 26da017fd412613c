"""
Scheduling core: schedule resolution, slot generation, availability,
alternative search and the booking conflict guard.
"""
