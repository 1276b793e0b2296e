"""Score domain services: submission rules, date windows and standings.

Routes for the JDQ/JVQ score forms and the public leaderboards import from
here so the aggregation logic stays independent of the HTTP layer.
"""
