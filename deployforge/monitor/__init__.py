"""Rich rendering of run reports and registry contents.

Modules
-------
renderer
    ``ReportRenderer`` turns ``RunReport`` and ``NetworkRecord`` values into
    Rich tables for terminal display.
"""
