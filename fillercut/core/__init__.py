"""Core detection, planning and splicing modules.

WHY: The core package is the algorithmic heart of the engine: the IR
dataclasses, filler detection, cut-plan generation and the two-pass
splice reducer. None of it performs I/O or touches a live store.

HOW: ir.py defines the data structures, timebase.py the coordinate
transforms and epsilon comparisons, fillers.py detection, cut_plan.py
plan generation, and splice.py the pure apply reducer.

RULES:
- IR dataclasses are the contract; change with care
- Every function here is pure; stores and files live elsewhere
"""
