"""Shared fixtures for flow engine tests."""

import pytest
from flow_config import FlowGraph, load_flow_from_dict


@pytest.fixture
def balance_flow_dict():
    """Two-node flow: a menu that leads to an end node or exits."""
    return {
        "id": "balance",
        "name": "Balance",
        "startNodeId": "start",
        "nodes": {
            "start": {
                "kind": "menu",
                "text": "Welcome",
                "options": [
                    {"key": "1", "text": "Balance", "targetNodeId": "bal"},
                    {"key": "0", "text": "Exit", "targetNodeId": None},
                ],
            },
            "bal": {"kind": "end", "text": "Your balance is {balance}"},
        },
        "variables": {"balance": "10.00"},
    }


@pytest.fixture
def balance_flow(balance_flow_dict) -> FlowGraph:
    """Parsed two-node balance flow."""
    return load_flow_from_dict(balance_flow_dict)


@pytest.fixture
def airtime_flow_dict():
    """Flow exercising input, conditional and payment nodes."""
    return {
        "id": "airtime",
        "startNodeId": "menu",
        "nodes": {
            "menu": {
                "kind": "menu",
                "text": "Airtime",
                "options": [{"key": "1", "text": "Buy", "targetNodeId": "amount"}],
            },
            "amount": {
                "kind": "input",
                "text": "Enter amount:",
                "inputSpec": {"variableName": "amount", "required": True, "pattern": "[0-9]+"},
                "nextNodeId": "check",
            },
            "check": {
                "kind": "conditional",
                "condition": {"variable": "amount", "operator": "greater_than", "value": "100"},
                "successNodeId": "too_much",
                "failureNodeId": "pay",
            },
            "too_much": {"kind": "end", "text": "Limit exceeded"},
            "pay": {
                "kind": "payment",
                "text": "Pay {amount}?",
                "amount": 5,
                "successNodeId": "done",
                "failureNodeId": "failed",
            },
            "done": {"kind": "end", "text": "Paid {amount}"},
            "failed": {"kind": "end", "text": "Payment failed"},
        },
    }


@pytest.fixture
def airtime_flow(airtime_flow_dict) -> FlowGraph:
    """Parsed airtime flow."""
    return load_flow_from_dict(airtime_flow_dict)
