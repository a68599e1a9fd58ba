"""
Clusterfeatures - Feature Lifecycle Engine for Cluster Add-ons

Brings platform capabilities (service mesh control plane, mesh
authorization, shared configuration) into existence from a declarative
top-level object, keeps them configured, tears them down when disabled and
reports their health as conditions on that object.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- cluster: Object store protocol and resource helpers
- feature: Feature definition, registry, handlers, tracking and reporting
- servicemesh: Service mesh and authorization capabilities
- platform: Top-level platform object and platform RBAC
"""

__version__ = "1.0.0"
