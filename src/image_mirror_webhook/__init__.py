"""
Image Mirror Webhook - a Kubernetes mutating admission webhook for pods.

On every pod creation the webhook:
- Rewrites container image references to pull through a registry mirror
- Ensures the namespace holds a dockerconfigjson pull secret for the mirror
- References that secret from the pod's imagePullSecrets
"""

__version__ = "0.1.0"
