"""Application services for tagrel.

Services implement the pipeline stages, coordinating between the domain layer
(core/) and infrastructure (git/, platform/, gh).
"""
