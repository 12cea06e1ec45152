"""Inpatient admission and bed allocation app.

This package contains the facility registry, the admission request
workflow, the inpatient stay lifecycle and the occupancy read side,
together with the HTTP views and route registrations exposing them.
"""
