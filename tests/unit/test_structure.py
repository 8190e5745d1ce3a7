"""Unit tests for structural integrity checks."""

import pytest

from ui_parity.collectors.structure import StructureChecker
from ui_parity.errors import BrowserError, ConfigurationError, FailureKind
from ui_parity.models import Implementation
from ui_parity.specs.structure import (
    CountRequirement,
    Relationship,
    RelationshipKind,
    StructureTable,
)


def checker(spec_tables, requirements=None, relationships=None) -> StructureChecker:
    return StructureChecker(spec_tables.selectors, StructureTable(requirements, relationships))


class TestCountRequirement:
    """Tests for count requirement checks."""

    @pytest.mark.asyncio
    async def test_within_bounds(self, spec_tables, fake_page, make_context):
        fake_page.add_accordion(states=("false", "false", "false"))
        requirement = CountRequirement("faqQuestion", min_count=3, max_count=5)

        result = await checker(spec_tables).check_count(make_context(fake_page), requirement)

        assert result.passed
        assert result.message == "faqQuestion: 3 found"
        assert result.selector == "dt button"
        assert result.actual == "3"

    @pytest.mark.asyncio
    async def test_missing(self, spec_tables, fake_page, make_context):
        """Test that a required role with no match is a presence failure."""
        requirement = CountRequirement("heroTitle")

        result = await checker(spec_tables).check_count(make_context(fake_page), requirement)

        assert not result.passed
        assert result.kind == FailureKind.ELEMENT_NOT_FOUND
        assert result.message == "heroTitle: required element missing"

    @pytest.mark.asyncio
    async def test_too_few(self, spec_tables, fake_page, make_context):
        fake_page.add_accordion()
        requirement = CountRequirement("faqQuestion", min_count=3)

        result = await checker(spec_tables).check_count(make_context(fake_page), requirement)

        assert result.kind == FailureKind.STRUCTURE_VIOLATION
        assert result.message == "faqQuestion: found 2, expected at least 3"
        assert result.actual == "2"

    @pytest.mark.asyncio
    async def test_too_many(self, spec_tables, fake_page, make_context):
        fake_page.add("h1")
        fake_page.add("h1")
        requirement = CountRequirement("heroTitle", max_count=1)

        result = await checker(spec_tables).check_count(make_context(fake_page), requirement)

        assert result.kind == FailureKind.STRUCTURE_VIOLATION
        assert result.message == "heroTitle: found 2, expected at most 1"

    @pytest.mark.asyncio
    async def test_allowed_missing_skipped(self, spec_tables, fake_page, make_context):
        """Test that an implementation allowed to lack a role is not checked."""
        requirement = CountRequirement(
            "heroTitle", allow_missing=frozenset({Implementation.CANDIDATE})
        )

        candidate = await checker(spec_tables).check_count(make_context(fake_page), requirement)
        baseline = await checker(spec_tables).check_count(
            make_context(fake_page, Implementation.BASELINE), requirement
        )

        assert candidate is None
        assert not baseline.passed

    @pytest.mark.asyncio
    async def test_unique_role_skipped_on_other_implementation(
        self, spec_tables, fake_page, make_context
    ):
        requirement = CountRequirement("productLink")

        result = await checker(spec_tables).check_count(
            make_context(fake_page, Implementation.BASELINE), requirement
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_browser_error(self, spec_tables, fake_page, make_context):
        async def broken(selector):
            raise BrowserError("count", "Execution context was destroyed")

        fake_page.count = broken

        result = await checker(spec_tables).check_count(
            make_context(fake_page), CountRequirement("heroTitle")
        )

        assert result.kind == FailureKind.STRUCTURE_VIOLATION
        assert "Execution context was destroyed" in result.message

    def test_bounds_validated(self):
        with pytest.raises(ConfigurationError):
            CountRequirement("heroTitle", min_count=3, max_count=2)
        with pytest.raises(ConfigurationError):
            CountRequirement("heroTitle", min_count=-1)


class TestRelationship:
    """Tests for DOM relationship checks."""

    def test_selectors(self):
        contains = Relationship("header", RelationshipKind.CONTAINS, "navigation")
        follows = Relationship("heroTitle", RelationshipKind.FOLLOWED_BY, "heroSubtitle")

        assert contains.selector("header", "nav") == ":is(header) :is(nav)"
        assert follows.selector("h1", "h1 + p") == ":is(h1) ~ :is(h1 + p)"
        assert contains.check == "contains:navigation"
        assert follows.check == "followedBy:heroSubtitle"

    @pytest.mark.asyncio
    async def test_contains(self, spec_tables, fake_page, make_context):
        fake_page.add(":is(body) :is(dt button)")
        fake_page.add(":is(body) :is(dt button)")
        relationship = Relationship("body", RelationshipKind.CONTAINS, "faqQuestion", min_count=2)

        result = await checker(spec_tables).check_relationship(
            make_context(fake_page), relationship
        )

        assert result.passed
        assert result.message == "body: contains 2 faqQuestion"
        assert result.selector == "body"

    @pytest.mark.asyncio
    async def test_contains_too_few(self, spec_tables, fake_page, make_context):
        fake_page.add(":is(body) :is(dt button)")
        relationship = Relationship("body", RelationshipKind.CONTAINS, "faqQuestion", min_count=3)

        result = await checker(spec_tables).check_relationship(
            make_context(fake_page), relationship
        )

        assert result.kind == FailureKind.STRUCTURE_VIOLATION
        assert result.message == "body: contains 1 faqQuestion, expected at least 3"
        assert result.actual == "1"

    @pytest.mark.asyncio
    async def test_followed_by(self, spec_tables, fake_page, make_context):
        relationship = Relationship("heroTitle", RelationshipKind.FOLLOWED_BY, "ctaButton")
        context = make_context(fake_page)

        missing = await checker(spec_tables).check_relationship(context, relationship)
        fake_page.add(":is(h1) ~ :is(button.btn-primary)")
        present = await checker(spec_tables).check_relationship(context, relationship)

        assert missing.message == "heroTitle: not followed by ctaButton"
        assert missing.check == "followedBy:ctaButton"
        assert present.passed

    @pytest.mark.asyncio
    async def test_per_target_selectors_used(self, spec_tables, fake_page, make_context):
        """Test that both roles resolve for the implementation under test."""
        fake_page.add(":is(h1) ~ :is(button.bg-highlight)")
        relationship = Relationship("heroTitle", RelationshipKind.FOLLOWED_BY, "ctaButton")

        result = await checker(spec_tables).check_relationship(
            make_context(fake_page, Implementation.BASELINE), relationship
        )

        assert result.passed

    @pytest.mark.asyncio
    async def test_unique_role_skipped(self, spec_tables, fake_page, make_context):
        relationship = Relationship("body", RelationshipKind.CONTAINS, "productLink")

        result = await checker(spec_tables).check_relationship(
            make_context(fake_page, Implementation.BASELINE), relationship
        )

        assert result is None


class TestStructureChecker:
    """Tests for StructureChecker.run."""

    @pytest.mark.asyncio
    async def test_run_orders_and_skips(self, spec_tables, fake_page, make_context):
        """Test that counts come before relationships and skipped roles are left out."""
        fake_page.add("h1")
        structure = checker(
            spec_tables,
            [CountRequirement("heroTitle"), CountRequirement("productLink")],
            [Relationship("body", RelationshipKind.CONTAINS, "heroTitle")],
        )

        results = await structure.run(make_context(fake_page, Implementation.BASELINE))

        assert [(r.role, r.check) for r in results] == [
            ("heroTitle", "count"),
            ("body", "contains:heroTitle"),
        ]
        assert [r.passed for r in results] == [True, False]

    def test_table_roles(self):
        table = StructureTable(
            [CountRequirement("heroTitle")],
            [Relationship("header", RelationshipKind.CONTAINS, "navigation")],
        )

        assert table.all_roles() == {"heroTitle", "header", "navigation"}
        assert len(table) == 2
        assert len(list(table)) == 2
