"""
Tests for translating gateway transaction states into payment statuses.
"""

import pytest

from core.payments import map_transaction_status


@pytest.mark.parametrize('gateway_status, expected', [
    ('capture', 'paid'),
    ('settlement', 'paid'),
    ('pending', 'pending'),
    ('deny', 'failed'),
    ('cancel', 'failed'),
    ('expire', 'failed'),
])
def test_known_states(gateway_status, expected):
    assert map_transaction_status(gateway_status) == expected


@pytest.mark.parametrize('gateway_status', [
    'refund',
    'partial_refund',
    'authorize',
    'SETTLEMENT',
    ' settlement',
    '',
    None,
    42,
    {'transaction_status': 'settlement'},
])
def test_everything_else_is_pending(gateway_status):
    assert map_transaction_status(gateway_status) == 'pending'
