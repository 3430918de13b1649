"""Absence and incidence approval workflow.

Requests move through SUPERVISOR, MANAGER, HR and, when pay is affected, PAYROLL
approval stages before they count as approved.
"""
