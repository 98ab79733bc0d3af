"""Conversion pipeline: extension handlers and disc/directory runners."""
