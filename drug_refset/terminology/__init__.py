"""RF2 normalization: refset memberships, descriptions and display terms."""

from drug_refset.terminology.best_term import (
    MissingDefinition,
    SimpleDefinition,
    select_best_terms,
)
from drug_refset.terminology.descriptions import ConceptDescriptionSet, DescriptionRecord
from drug_refset.terminology.naming import NamedRefsets, NamingCollision, name_refsets
from drug_refset.terminology.refsets import (
    RefsetMembership,
    RefsetSummary,
    load_refsets,
    referenced_concepts,
    summarise_refsets,
)
from drug_refset.terminology.unknown_concepts import (
    TermBrowserClient,
    UnknownCodeCache,
    UnknownConceptResolver,
)

__all__ = [
    "ConceptDescriptionSet",
    "DescriptionRecord",
    "MissingDefinition",
    "NamedRefsets",
    "NamingCollision",
    "RefsetMembership",
    "RefsetSummary",
    "SimpleDefinition",
    "TermBrowserClient",
    "UnknownCodeCache",
    "UnknownConceptResolver",
    "load_refsets",
    "name_refsets",
    "referenced_concepts",
    "select_best_terms",
    "summarise_refsets",
]
