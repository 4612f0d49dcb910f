"""
Quickstart: a minimal flowpipe pipeline.

Sends a string through a class step and a plain function, with a tracer
attached so the per-step records can be printed afterwards.
"""

from flowpipe import Flowpipe, Step, TestTracer


class Uppercase(Step):
    def handle(self, payload, next):
        return next(payload.upper())


def add_world(payload, next):
    return next(f"{payload} WORLD")


tracer = TestTracer()

result = (
    Flowpipe.make(tracer)
    .send("hello")
    .through([Uppercase(), add_world])
    .then_return()
)

print(result)  # HELLO WORLD

for record in tracer.all():
    print(f"{record['step']}: {record['before']!r} -> {record['after']!r} "
          f"({record['duration']:.3f}ms)")
