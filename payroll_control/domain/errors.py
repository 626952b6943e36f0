"""Exceptions raised for malformed caller input.

Missing data is not an error anywhere in the control pipeline; these are
reserved for programming mistakes upstream.
"""
from __future__ import annotations


class PayrollControlError(Exception):
    """Base class for errors raised by the payroll control package."""


class ReconciliationInputError(PayrollControlError, ValueError):
    """Invalid arguments passed to the comparator or the reconciliation engine."""


class ConceptRegistryError(PayrollControlError, ValueError):
    """Concept code list is empty, duplicated or not numeric."""


class OfficialDatasetError(PayrollControlError, ValueError):
    """Official spreadsheet lacks the columns needed to build identity keys."""
