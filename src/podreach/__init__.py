"""PodReach — static pod-to-pod reachability analysis for Kubernetes NetworkPolicies."""

__version__ = "0.1.0"
