"""Group-to-route authorization merging."""

from __future__ import annotations

from ..models import AuthorizationInfo, AuthSource, merge_unique


def merge(parent: AuthorizationInfo, child: AuthorizationInfo, override: bool = True) -> AuthorizationInfo:
    """
    Combine a parent (group) record with a child (route) record.

    With ``override``, an explicit anonymous marker on the child wins and
    drops every parent requirement. Only one parent/child level is merged;
    inputs are never mutated.
    """
    inherited = parent.inherited and not child.requires_auth
    source = child.source if child.source is not AuthSource.NONE else parent.source

    if override and child.allows_anonymous:
        # inherited survives so the opt-out stays visible to the rules
        return AuthorizationInfo(allows_anonymous=True, inherited=inherited, source=source)

    if override:
        allows_anonymous = child.allows_anonymous if child.has_any_config else parent.allows_anonymous
    else:
        allows_anonymous = parent.allows_anonymous and child.allows_anonymous

    return AuthorizationInfo(
        requires_auth=parent.requires_auth or child.requires_auth,
        allows_anonymous=allows_anonymous,
        roles=merge_unique(parent.roles, child.roles),
        scopes=merge_unique(parent.scopes, child.scopes),
        permissions=merge_unique(parent.permissions, child.permissions),
        policies=merge_unique(parent.policies, child.policies),
        auth_dependencies=merge_unique(parent.auth_dependencies, child.auth_dependencies),
        inherited=inherited,
        source=source,
    )
