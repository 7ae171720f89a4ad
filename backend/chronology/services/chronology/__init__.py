"""Chronology game engine: draw pile, timelines, turns and lifecycle.

Routes and socket handlers import from here, keeping transport concerns
separated from the game rules.
"""
