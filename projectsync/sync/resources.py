"""
Resource kinds handled by the sync.

Each ``ResourceType`` knows how to query its endpoint, how to match source and target
resources, how to turn a source resource into a draft for the target project and which
update actions bring an existing target resource in line with that draft.

References between resources are carried by key: source queries expand references so
that the referenced resource's key is available, and drafts use ``{"typeId", "key"}``
resource identifiers, since ids differ between projects.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from .config import MAX_PAGE_SIZE
from .statistics import CategorySyncStatistics, SyncStatistics


def to_key_reference(reference: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Convert an expanded id reference into a key based resource identifier."""
    if not reference:
        return None
    if reference.get('key'):
        return {'typeId': reference.get('typeId'), 'key': reference['key']}
    obj = reference.get('obj') or {}
    if obj.get('key'):
        return {'typeId': reference.get('typeId'), 'key': obj['key']}
    return None


def reference_key(reference: Optional[Dict[str, Any]]) -> Optional[str]:
    key_reference = to_key_reference(reference)
    return key_reference['key'] if key_reference else None


def custom_fields_draft(custom: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not custom:
        return None
    type_reference = to_key_reference(custom.get('type'))
    if not type_reference:
        return None
    return {'type': {'key': type_reference['key']}, 'fields': custom.get('fields') or {}}


def quote_values(values: Iterable[str]) -> str:
    return ', '.join(json.dumps(value) for value in values)


def _without_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


class ResourceType:
    """Base description of a synced resource kind."""
    endpoint: str = ''
    resource_name: str = ''
    key_field: str = 'key'
    expand: List[str] = []
    # False when several target resources can answer ``where_matching`` for one key
    unique_lookup: bool = True

    def new_statistics(self) -> SyncStatistics:
        return SyncStatistics(resource_name=self.resource_name)

    def lookup_limit(self, keys: List[str]) -> int:
        """Page size of the target lookup for ``keys``."""
        if self.unique_lookup:
            return len(keys)
        return MAX_PAGE_SIZE

    def match_key(self, resource: Dict[str, Any]) -> Optional[str]:
        """Identity used to find the resource's counterpart in the target project."""
        return resource.get(self.key_field)

    def where_matching(self, keys: List[str]) -> str:
        return f'{self.key_field} in ({quote_values(keys)})'

    def build_draft(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def build_update_actions(self, existing: Dict[str, Any], draft: Dict[str, Any]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def _custom_actions(self, existing: Dict[str, Any], draft: Dict[str, Any]) -> List[Dict[str, Any]]:
        new_custom = draft.get('custom')
        old_custom = custom_fields_draft(existing.get('custom'))
        if new_custom == old_custom:
            return []
        if new_custom is None:
            return [{'action': 'setCustomType'}]
        return [{'action': 'setCustomType', 'type': new_custom['type'], 'fields': new_custom['fields']}]


class ProductTypeResource(ResourceType):
    endpoint = 'product-types'
    resource_name = 'product types'

    def build_draft(self, resource):
        return _without_none({
            'key': resource.get('key'),
            'name': resource.get('name'),
            'description': resource.get('description'),
            'attributes': resource.get('attributes') or [],
        })

    def build_update_actions(self, existing, draft):
        actions = []
        if existing.get('name') != draft.get('name'):
            actions.append({'action': 'changeName', 'name': draft.get('name')})
        if existing.get('description') != draft.get('description'):
            actions.append({'action': 'changeDescription', 'description': draft.get('description')})
        existing_names = {a.get('name') for a in existing.get('attributes') or []}
        for attribute in draft.get('attributes', []):
            if attribute.get('name') not in existing_names:
                actions.append({'action': 'addAttributeDefinition', 'attribute': attribute})
        return actions


class TypeResource(ResourceType):
    endpoint = 'types'
    resource_name = 'types'

    def build_draft(self, resource):
        return _without_none({
            'key': resource.get('key'),
            'name': resource.get('name'),
            'description': resource.get('description'),
            'resourceTypeIds': resource.get('resourceTypeIds') or [],
            'fieldDefinitions': resource.get('fieldDefinitions') or [],
        })

    def build_update_actions(self, existing, draft):
        actions = []
        if existing.get('name') != draft.get('name'):
            actions.append({'action': 'changeName', 'name': draft.get('name')})
        if existing.get('description') != draft.get('description'):
            actions.append({'action': 'setDescription', 'description': draft.get('description')})
        existing_names = {f.get('name') for f in existing.get('fieldDefinitions') or []}
        for field_definition in draft.get('fieldDefinitions', []):
            if field_definition.get('name') not in existing_names:
                actions.append({'action': 'addFieldDefinition', 'fieldDefinition': field_definition})
        return actions


class CategoryResource(ResourceType):
    endpoint = 'categories'
    resource_name = 'categories'
    expand = ['parent', 'custom.type']

    def new_statistics(self) -> SyncStatistics:
        return CategorySyncStatistics(resource_name=self.resource_name)

    def build_draft(self, resource):
        return _without_none({
            'key': resource.get('key'),
            'name': resource.get('name'),
            'slug': resource.get('slug'),
            'description': resource.get('description'),
            'parent': to_key_reference(resource.get('parent')),
            'orderHint': resource.get('orderHint'),
            'externalId': resource.get('externalId'),
            'metaTitle': resource.get('metaTitle'),
            'metaDescription': resource.get('metaDescription'),
            'custom': custom_fields_draft(resource.get('custom')),
        })

    def build_update_actions(self, existing, draft):
        actions = []
        if existing.get('name') != draft.get('name'):
            actions.append({'action': 'changeName', 'name': draft.get('name')})
        if existing.get('slug') != draft.get('slug'):
            actions.append({'action': 'changeSlug', 'slug': draft.get('slug')})
        if existing.get('description') != draft.get('description'):
            actions.append({'action': 'setDescription', 'description': draft.get('description')})
        if 'parent' in draft and reference_key(existing.get('parent')) != draft['parent']['key']:
            actions.append({'action': 'changeParent', 'parent': draft['parent']})
        if draft.get('orderHint') is not None and existing.get('orderHint') != draft['orderHint']:
            actions.append({'action': 'changeOrderHint', 'orderHint': draft['orderHint']})
        if existing.get('externalId') != draft.get('externalId'):
            actions.append({'action': 'setExternalId', 'externalId': draft.get('externalId')})
        if existing.get('metaTitle') != draft.get('metaTitle'):
            actions.append({'action': 'setMetaTitle', 'metaTitle': draft.get('metaTitle')})
        if existing.get('metaDescription') != draft.get('metaDescription'):
            actions.append({'action': 'setMetaDescription', 'metaDescription': draft.get('metaDescription')})
        return actions + self._custom_actions(existing, draft)


class ProductResource(ResourceType):
    endpoint = 'products'
    resource_name = 'products'
    expand = [
        'productType',
        'taxCategory',
        'state',
        'masterData.staged.categories[*]',
    ]

    @staticmethod
    def _staged(resource: Dict[str, Any]) -> Dict[str, Any]:
        return (resource.get('masterData') or {}).get('staged') or {}

    @staticmethod
    def _variant_draft(variant: Dict[str, Any]) -> Dict[str, Any]:
        return _without_none({
            'key': variant.get('key'),
            'sku': variant.get('sku'),
            'prices': [
                _without_none({
                    'key': price.get('key'),
                    'value': price.get('value'),
                    'country': price.get('country'),
                })
                for price in variant.get('prices') or []
            ],
            'attributes': variant.get('attributes') or [],
            'images': variant.get('images') or [],
        })

    def build_draft(self, resource):
        staged = self._staged(resource)
        categories = [to_key_reference(c) for c in staged.get('categories') or []]
        return _without_none({
            'key': resource.get('key'),
            'productType': to_key_reference(resource.get('productType')),
            'taxCategory': to_key_reference(resource.get('taxCategory')),
            'state': to_key_reference(resource.get('state')),
            'name': staged.get('name'),
            'slug': staged.get('slug'),
            'description': staged.get('description'),
            'metaTitle': staged.get('metaTitle'),
            'metaDescription': staged.get('metaDescription'),
            'categories': [c for c in categories if c],
            'masterVariant': self._variant_draft(staged.get('masterVariant') or {}),
            'variants': [self._variant_draft(v) for v in staged.get('variants') or []],
            'publish': bool((resource.get('masterData') or {}).get('published')),
        })

    def build_update_actions(self, existing, draft):
        staged = self._staged(existing)
        actions = []
        if staged.get('name') != draft.get('name'):
            actions.append({'action': 'changeName', 'name': draft.get('name'), 'staged': True})
        if staged.get('slug') != draft.get('slug'):
            actions.append({'action': 'changeSlug', 'slug': draft.get('slug'), 'staged': True})
        if staged.get('description') != draft.get('description'):
            actions.append({'action': 'setDescription', 'description': draft.get('description'), 'staged': True})
        if staged.get('metaTitle') != draft.get('metaTitle'):
            actions.append({'action': 'setMetaTitle', 'metaTitle': draft.get('metaTitle'), 'staged': True})
        if staged.get('metaDescription') != draft.get('metaDescription'):
            actions.append({'action': 'setMetaDescription', 'metaDescription': draft.get('metaDescription'), 'staged': True})

        old_categories = {reference_key(c) for c in staged.get('categories') or []}
        new_categories = {c['key'] for c in draft.get('categories', [])}
        for key in sorted(new_categories - old_categories):
            actions.append({'action': 'addToCategory', 'category': {'typeId': 'category', 'key': key}, 'staged': True})
        for key in sorted(k for k in old_categories - new_categories if k):
            actions.append({'action': 'removeFromCategory', 'category': {'typeId': 'category', 'key': key}, 'staged': True})

        if actions and draft.get('publish'):
            actions.append({'action': 'publish'})
        return actions


class InventoryEntryResource(ResourceType):
    endpoint = 'inventory'
    resource_name = 'inventory entries'
    key_field = 'sku'
    expand = ['supplyChannel', 'custom.type']
    # One SKU has an entry per supply channel
    unique_lookup = False

    def match_key(self, resource):
        sku = resource.get('sku')
        if not sku:
            return None
        channel_key = reference_key(resource.get('supplyChannel'))
        return f'{sku}|{channel_key}' if channel_key else sku

    def where_matching(self, keys):
        skus = sorted({key.split('|', 1)[0] for key in keys})
        return f'sku in ({quote_values(skus)})'

    def build_draft(self, resource):
        return _without_none({
            'sku': resource.get('sku'),
            'quantityOnStock': resource.get('quantityOnStock', 0),
            'restockableInDays': resource.get('restockableInDays'),
            'expectedDelivery': resource.get('expectedDelivery'),
            'supplyChannel': to_key_reference(resource.get('supplyChannel')),
            'custom': custom_fields_draft(resource.get('custom')),
        })

    def build_update_actions(self, existing, draft):
        actions = []
        if existing.get('quantityOnStock') != draft.get('quantityOnStock'):
            actions.append({'action': 'changeQuantity', 'quantity': draft.get('quantityOnStock')})
        if existing.get('restockableInDays') != draft.get('restockableInDays'):
            actions.append({'action': 'setRestockableInDays', 'restockableInDays': draft.get('restockableInDays')})
        if existing.get('expectedDelivery') != draft.get('expectedDelivery'):
            actions.append({'action': 'setExpectedDelivery', 'expectedDelivery': draft.get('expectedDelivery')})
        return actions + self._custom_actions(existing, draft)
