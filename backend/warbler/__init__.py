"""Warbler: social network backend with tweets, comments, uploads and chat rooms."""
