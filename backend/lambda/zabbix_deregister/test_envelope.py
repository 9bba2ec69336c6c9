"""Envelope decoding and lifecycle parsing tests.

Covers the SNS and SQS record variants, the nested EventBridge wrapper and
the flat Auto Scaling notification, and rejection of everything else.
"""

from __future__ import annotations

import json

import pytest

from envelope import SHAPE_EVENTBRIDGE, SHAPE_FLAT, decode_envelope
from errors import ParseError
from lifecycle_event import parse_lifecycle_event

DETAIL = {
    "ActivityId": "5b0a1f1e-0c8f-4d45-9a4b-1c6f5b2f8e11",
    "AutoScalingGroupName": "web-asg",
    "Cause": "At 2026-10-19T10:00:00Z an instance was taken out of service in response to a scale-in.",
    "Description": "Terminating EC2 instance: i-123",
    "Details": {"Availability Zone": "us-west-2a"},
    "EC2InstanceId": "i-123",
    "EndTime": "2026-10-19T10:01:30.000Z",
    "RequestId": "5b0a1f1e-0c8f-4d45-9a4b-1c6f5b2f8e11",
    "StartTime": "2026-10-19T10:00:05.000Z",
    "StatusCode": "InProgress",
}

WRAPPER = {
    "version": "0",
    "id": "7e1b7c1e-2d4f-4a43-8a52-0d6a2a6f1e3c",
    "detail-type": "EC2 Instance Terminate Successful",
    "source": "aws.autoscaling",
    "account": "123456789012",
    "time": "2026-10-19T10:01:31Z",
    "region": "us-west-2",
    "resources": [],
    "detail": DETAIL,
}


def _sns_event(message) -> dict:
    body = message if isinstance(message, str) else json.dumps(message)
    return {"Records": [{"EventSource": "aws:sns", "Sns": {"Message": body}}]}


def test_decode_nested_wrapper_from_sns():
    payload = decode_envelope(_sns_event(WRAPPER))

    assert payload.shape == SHAPE_EVENTBRIDGE
    assert payload.detail["EC2InstanceId"] == "i-123"
    assert payload.wrapper["detail-type"] == "EC2 Instance Terminate Successful"
    assert "detail" not in payload.wrapper


def test_decode_flat_detail_from_sqs_body():
    event = {"Records": [{"eventSource": "aws:sqs", "body": json.dumps(DETAIL)}]}

    payload = decode_envelope(event)

    assert payload.shape == SHAPE_FLAT
    assert payload.detail["EC2InstanceId"] == "i-123"
    assert payload.wrapper == {}


def test_decode_detail_encoded_as_string():
    wrapper = dict(WRAPPER, detail=json.dumps(DETAIL))

    payload = decode_envelope(_sns_event(wrapper))

    assert payload.detail["AutoScalingGroupName"] == "web-asg"


def test_decode_rejects_sqs_batch_with_several_records():
    event = {
        "Records": [
            {"eventSource": "aws:sqs", "body": json.dumps(dict(DETAIL, EC2InstanceId="i-aaa"))},
            {"eventSource": "aws:sqs", "body": json.dumps(dict(DETAIL, EC2InstanceId="i-bbb"))},
        ]
    }

    with pytest.raises(ParseError, match="2 records"):
        decode_envelope(event)


def test_decode_lowercase_sns_record():
    event = {"Records": [{"eventSource": "aws:sns", "sns": {"message": json.dumps(WRAPPER)}}]}

    payload = decode_envelope(event)

    assert payload.shape == SHAPE_EVENTBRIDGE
    assert payload.detail["EC2InstanceId"] == "i-123"


@pytest.mark.parametrize(
    "envelope",
    [
        {},
        {"Records": []},
        {"Records": "nope"},
        {"Records": [{"Sns": {"Message": "not-json"}}]},
        {"Records": [{"Sns": {"Message": "[1, 2]"}}]},
        {"Records": [{"Sns": {"Message": ""}}]},
        {"Records": [{"kinesis": {"data": "e30="}}]},
        {"Records": [{"Sns": {"Message": json.dumps({"Event": "autoscaling:TEST_NOTIFICATION"})}}]},
        {"Records": [{"Sns": {"Message": json.dumps({"source": "aws.autoscaling", "detail": [1]})}}]},
        [],
    ],
)
def test_decode_rejects_malformed_envelopes(envelope):
    with pytest.raises(ParseError):
        decode_envelope(envelope)


def test_parse_nested_event_copies_advisory_fields():
    event = parse_lifecycle_event(decode_envelope(_sns_event(WRAPPER)))

    assert event.instance_id == "i-123"
    assert event.autoscaling_group_name == "web-asg"
    assert event.status_code == "InProgress"
    assert event.start_time == "2026-10-19T10:00:05.000Z"
    assert event.end_time == "2026-10-19T10:01:30.000Z"
    assert event.detail_type == "EC2 Instance Terminate Successful"
    assert event.region == "us-west-2"


def test_parse_flat_event_yields_same_instance_id():
    flat = dict(DETAIL, Event="autoscaling:EC2_INSTANCE_TERMINATE")

    event = parse_lifecycle_event(decode_envelope(_sns_event(flat)))

    assert event.instance_id == "i-123"
    assert event.detail_type == "autoscaling:EC2_INSTANCE_TERMINATE"
    assert event.source == ""


@pytest.mark.parametrize("instance_id", [None, "", "   ", 42])
def test_parse_rejects_missing_instance_id(instance_id):
    detail = {k: v for k, v in DETAIL.items() if k != "EC2InstanceId"}
    if instance_id is not None:
        detail["EC2InstanceId"] = instance_id
    wrapper = dict(WRAPPER, detail=detail)

    with pytest.raises(ParseError):
        parse_lifecycle_event(decode_envelope(_sns_event(wrapper)))


def test_parse_ignores_non_string_advisory_fields():
    wrapper = dict(WRAPPER, detail=dict(DETAIL, Cause=None, StatusCode=3))

    event = parse_lifecycle_event(decode_envelope(_sns_event(wrapper)))

    assert event.cause == ""
    assert event.status_code == ""
