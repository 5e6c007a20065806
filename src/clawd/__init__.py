"""Clawd action dispatch: validated, confirmable actions for the chat assistant."""
