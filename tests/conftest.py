"""Shared test fixtures."""

from __future__ import annotations

import asyncio

import pytest


# Model messages as they arrive from the chat transport

FENCED_FLOWCHART = "Here you go:\n```mermaid\ngraph TD\nA-->B\n```"

MISSING_SENDER = "sequenceDiagram\n->>B: hi"

LEGACY_MINIMAL = "flowchart\nst=>start: Start\nop=>operation: Do\nst->op"

LEGACY_LOGIN = '''st=>start: Start
in=>inputoutput: Enter credentials
op=>operation: Verify credentials
cond=>condition: Valid?
e=>end: Logged in
st->in->op->cond
cond(yes)->e
cond(no, right)->in'''

PROSE_ONLY = "I am not sure what you mean. Could you describe the system first?"

SEQUENCE_IN_PROSE = '''Sure! Here is the diagram:
sequenceDiagram
Alice->>Bob: Hello
Bob-->>Alice: Hi
Let me know if you need changes.'''

SEQUENCE_LAST_SENDER = '''sequenceDiagram
participant Client
participant Web Server
Client->>Server: request
Server->>DB: query
-->>Client: rows'''

FLOWCHART_CHAIN = "flowchart LR\nA[Start] B[Process] C[End]"

CLASS_INLINE = "classDiagram\nclass User { +String name +login() }"

ER_BLOCK = '''erDiagram
CUSTOMER ||--o{ ORDER : places
CUSTOMER {
string   name
int id    PK
int order_id FK "ref"
}'''

JOURNEY_PARTIAL = '''journey
title My day
section Work
Make tea
Write code: 5
Review: Alice
Deploy: 4: Bob'''

MINDMAP = "mindmap\n  root((Plan))\n    Goals   \n      Ship\n    Risks"


class FakeRenderer:
    """Render callable whose results the test resolves by hand."""

    def __init__(self):
        self.calls = []

    async def __call__(self, text):
        future = asyncio.get_running_loop().create_future()
        self.calls.append((text, future))
        return await future

    async def wait_for_calls(self, count):
        for _ in range(200):
            if len(self.calls) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {count} render calls, got {len(self.calls)}")

    def resolve(self, index, value):
        self.calls[index][1].set_result(value)

    def fail(self, index, exc):
        self.calls[index][1].set_exception(exc)


async def echo_renderer(text):
    return f"<svg>{text}</svg>"


@pytest.fixture
def fake_renderer():
    return FakeRenderer()
