"""Notification routing: delivers each run's notification to every sink.

Sinks are pluggable targets: the console, local JSON files, Graphite,
or any custom sink implementing the ``BaseSink`` protocol.
"""
