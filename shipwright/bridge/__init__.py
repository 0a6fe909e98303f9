"""Bridges to the external tools the pipeline drives.

Modules
-------
git
    Clones/fetches the repository and checks out the requested ref.
maven
    Compile, test, and package goals.
docker
    Engine reachability, image builds, compose bring-up.
ansible
    Tag-restricted playbook runs against an inventory.

Every bridge talks to its tool only through a ``CommandRunner``.
"""
