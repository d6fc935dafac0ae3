"""Experience engine components.

- Runtime: `runtime.ExperienceRuntime` drives a live Experience through
  player actions, using `triggers.TriggerEngine` for activations.
- Validator: `graph.DependencyGraph` feeds `reachability.ReachabilityAnalyzer`,
  wrapped by `validator.ExperienceValidator` into a report.

Import directly from submodules to avoid circular imports:
    from puzzlebox.engine.runtime import ExperienceRuntime
    from puzzlebox.engine.validator import ExperienceValidator
    from puzzlebox.engine.loader import ExperienceLoader
"""

# Note: No eager imports to avoid circular import issues
