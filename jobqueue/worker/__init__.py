"""
Worker module.
Contains the handler registry, the job executor and the polling worker.
"""
