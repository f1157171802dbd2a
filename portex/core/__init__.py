"""
Portex Core Module
===================

Error taxonomy, report models and the analysis engine.
"""
