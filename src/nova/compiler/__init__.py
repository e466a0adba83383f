"""Route compiler — route-spec strings to an ordered, immutable route table.

Stages are classified into segment types once, when the engine freezes;
malformed declarations and unknown capabilities reject the program
before any request is served.
"""
