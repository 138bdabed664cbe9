"""
LocalStack provisioning: the example resource manifest and the provisioner
that creates it.
"""
