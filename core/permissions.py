"""
Access control for the Food Rescue Marketplace.

All authorization decisions go through AccessPolicy.allows(), which looks up
the actor's role and relation to the resource in a single capability table.
The DRF permission classes below are thin adapters over the policy.
"""

from rest_framework import permissions

from .models import Order, Product, Store


# Resource kinds for actions that do not target a stored object
PRODUCT = 'product'
STORE = 'store'
PRICING = 'pricing'

# Relation of an actor to a resource
OWNER = 'owner'
PARTICIPANT = 'participant'
NONE = 'none'
ANY = '*'

ORDER_ACTIONS = frozenset({'view', 'change_status', 'change_payment', 'cancel'})
PRODUCT_ACTIONS = frozenset({'view', 'create', 'update', 'delete'})
STORE_ACTIONS = frozenset({'view', 'create', 'update', 'delete'})
PRICING_ACTIONS = frozenset({'revalue'})


class AccessPolicy:
    """
    Capability table keyed by resource kind, then (role, relation).

    Order relations:
    - owner: the actor placed the order
    - participant: the actor sold at least one of its line-items

    Product and store relations:
    - owner: the actor is the listing's or store's seller

    An actor holding several relations to the same order receives the union
    of their capabilities.

    Usage:
        if not AccessPolicy.allows(request.user, 'cancel', order):
            raise PermissionDenied()
    """

    CAPABILITIES = {
        'order': {
            ('buyer', OWNER): frozenset({'view', 'cancel'}),
            ('seller', OWNER): frozenset({'view', 'cancel'}),
            ('seller', PARTICIPANT): frozenset({'view', 'change_status', 'change_payment', 'cancel'}),
            ('admin', ANY): ORDER_ACTIONS,
        },
        'product': {
            (ANY, ANY): frozenset({'view'}),
            ('seller', NONE): frozenset({'view', 'create'}),
            ('seller', OWNER): frozenset({'view', 'create', 'update', 'delete'}),
            ('admin', ANY): PRODUCT_ACTIONS,
        },
        'store': {
            (ANY, ANY): frozenset({'view'}),
            ('seller', NONE): frozenset({'view', 'create'}),
            ('seller', OWNER): frozenset({'view', 'create', 'update', 'delete'}),
            ('admin', ANY): STORE_ACTIONS,
        },
        'pricing': {
            ('admin', ANY): PRICING_ACTIONS,
        },
    }

    @staticmethod
    def role_of(actor):
        """
        Resolve the actor's marketplace role.

        Returns:
            str or None: 'buyer', 'seller', 'admin', or None when unauthenticated
        """
        if actor is None or not getattr(actor, 'is_authenticated', False):
            return None
        return getattr(actor, 'role', None)

    @classmethod
    def resource_kind(cls, resource):
        if isinstance(resource, Order):
            return 'order'
        if isinstance(resource, Product) or resource == PRODUCT:
            return 'product'
        if isinstance(resource, Store) or resource == STORE:
            return 'store'
        if resource == PRICING:
            return 'pricing'
        raise ValueError(f'Unsupported resource: {resource!r}')

    @classmethod
    def relations(cls, actor, resource):
        """
        Relations the actor holds to a resource.

        Args:
            actor: Authenticated user
            resource: Order, Product, Store or a resource kind constant

        Returns:
            set: Subset of {'owner', 'participant'}, or {'none'}
        """
        found = set()
        actor_id = getattr(actor, 'pk', None)

        if actor_id is not None:
            if isinstance(resource, Order):
                if resource.buyer_id == actor_id:
                    found.add(OWNER)
                if actor_id in resource.seller_ids():
                    found.add(PARTICIPANT)
            elif isinstance(resource, (Product, Store)):
                if resource.seller_id == actor_id:
                    found.add(OWNER)

        return found or {NONE}

    @classmethod
    def capabilities(cls, actor, resource):
        """
        All actions the actor may perform on a resource.

        Returns:
            set: Allowed action names
        """
        table = cls.CAPABILITIES[cls.resource_kind(resource)]
        role = cls.role_of(actor)
        relations = cls.relations(actor, resource) if role else {NONE}

        allowed = set(table.get((ANY, ANY), ()))
        if role is None:
            return allowed

        allowed |= table.get((role, ANY), set())
        for relation in relations:
            allowed |= table.get((role, relation), set())
        return allowed

    @classmethod
    def allows(cls, actor, action, resource):
        """
        Decide whether the actor may perform an action on a resource.

        Args:
            actor: User (may be anonymous)
            action: Action name, e.g. 'view', 'cancel', 'update'
            resource: Order, Product or Store instance, or PRODUCT / STORE / PRICING

        Returns:
            bool: True if the action is allowed
        """
        return action in cls.capabilities(actor, resource)


class IsSellerOrAdmin(permissions.BasePermission):
    """
    Allows listing creation to sellers and administrators.

    Safe methods are open to every caller.

    Usage:
        class ProductListCreateView(APIView):
            permission_classes = [IsSellerOrAdmin]
    """

    message = 'Only sellers can create listings.'
    resource = PRODUCT

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return AccessPolicy.allows(request.user, 'create', self.resource)


class IsStoreSellerOrAdmin(IsSellerOrAdmin):
    """Allows store creation to sellers and administrators."""

    message = 'Only sellers can create stores.'
    resource = STORE


class IsAdminActor(permissions.BasePermission):
    """
    Allows only marketplace administrators to trigger price revaluation.

    Usage:
        class PriceRevaluationView(APIView):
            permission_classes = [IsAuthenticated, IsAdminActor]
    """

    message = 'You do not have permission to perform this action. Administrator privileges required.'

    def has_permission(self, request, view):
        """
        Check if the user may run the revaluation job.

        Args:
            request: HTTP request object
            view: View being accessed

        Returns:
            bool: True if user is an administrator, False otherwise
        """
        return AccessPolicy.allows(request.user, 'revalue', PRICING)


class CanManageProduct(permissions.BasePermission):
    """
    Object-level permission for listing edits.

    Authorization rules:
    - Anyone can view a listing
    - The listing's seller can update and delete it
    - Administrators can update and delete any listing

    Usage:
        class ProductDetailView(APIView):
            permission_classes = [CanManageProduct]
    """

    message = 'You do not have permission to modify this listing.'

    METHOD_ACTIONS = {
        'PUT': 'update',
        'PATCH': 'update',
        'DELETE': 'delete',
    }

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        """
        Check if user can act on the specific listing.

        Args:
            request: HTTP request object
            view: View being accessed
            obj: Product instance

        Returns:
            bool: True if allowed, False otherwise
        """
        action = self.METHOD_ACTIONS.get(request.method, 'view')
        return AccessPolicy.allows(request.user, action, obj)


class CanManageStore(CanManageProduct):
    """
    Object-level permission for store edits.

    The store's seller can update and delete it, administrators can act on
    any store, and everyone can view.
    """

    message = 'You do not have permission to modify this store.'
