"""Build monitor: rich terminal views of pipeline runs and ledger history.

Modules
-------
renderer
    ``MonitorRenderer`` turns a ``PipelineRun`` or Run Ledger rows into
    Rich renderables for terminal display.
"""
