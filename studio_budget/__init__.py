"""
Studio Budget - estimate hierarchy and allocation targeting core.

Estimates decompose into Groups -> Sections -> Subsections. Purchase orders,
expenses, wages, payslips and subcontractor assignments reference a node of
that tree (or the whole estimate) through an AllocationTarget.
"""

__version__ = "1.0.0"
