"""
phasetrack - project-lifecycle progress tracking.

Models a client engagement moving through six delivery phases, derives
weighted progress from milestones and substep position, and serves
consistent snapshots to polling dashboards.
"""

__version__ = "0.1.0"
