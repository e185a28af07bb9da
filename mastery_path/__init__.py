"""
Mastery Path: adaptive multiplication-fact scheduler.

Decides which times-table facts a learner drills next, in which format,
and when the learner advances to the next table.
"""

__version__ = "1.0.0"
