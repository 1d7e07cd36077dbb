"""
Tests for django_pageable.paginator and django_pageable.sources modules.
"""

import asyncio
import datetime
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from asgiref.sync import async_to_sync
from django.test import override_settings
from django.utils import timezone

from django_pageable.exceptions import InvalidArgument, PropertyNotFound, SortFormatError, ValidationError
from django_pageable.paginator import PageAssembler, acount_by_filter, ato_paged, count_by_filter, to_paged
from django_pageable.request import RequestParameters
from django_pageable.sources import InMemorySource, QueryableSource, QuerySetSource, as_source
from django_pageable.tests.records import Label, Post, Status, make_posts
from django_pageable.tests.testapp.models import Article, Author, Tag


def ids(page):
    return [item.id for item in page.data]


class TestToPagedInMemory:
    """Paging plain records."""

    def test_second_page(self, registry):
        page = to_paged(make_posts(12), RequestParameters(page=2, size=5), registry=registry)
        assert ids(page) == [6, 7, 8, 9, 10]
        assert (page.current, page.size, page.elements, page.pages) == (2, 5, 12, 3)

    def test_last_partial_page(self, registry):
        page = to_paged(make_posts(12), RequestParameters(page=3, size=5), registry=registry)
        assert ids(page) == [11, 12]
        assert page.pages == 3

    def test_page_past_the_end(self, registry):
        page = to_paged(make_posts(12), RequestParameters(page=5, size=5), registry=registry)
        assert page.data == ()
        assert page.elements == 12
        assert page.pages == 3

    def test_defaults(self, registry):
        page = to_paged(make_posts(12), RequestParameters(), registry=registry)
        assert ids(page) == [1, 2, 3, 4, 5]
        assert page.current == 1

    def test_empty_source(self, registry):
        page = to_paged([], RequestParameters(), registry=registry)
        assert page.data == ()
        assert page.elements == 0
        assert page.pages == 0

    def test_filter_and_sort(self, registry):
        posts = make_posts(12)
        params = RequestParameters(page=1, size=3, filter="title[post 1]", sort="views desc")
        page = to_paged(posts, params, registry=registry)
        assert ids(page) == [12, 11, 10]
        assert page.elements == 4
        assert page.pages == 2

    def test_multi_key_sort(self, registry):
        posts = make_posts(4)
        posts[0].status = Status.ACTIVE
        posts[2].status = Status.ACTIVE
        params = RequestParameters(size=10, sort="status asc, views desc")
        assert ids(to_paged(posts, params, registry=registry)) == [3, 1, 4, 2]

    def test_date_filter(self, registry):
        params = RequestParameters(size=10, filter="created_at[2022-09-10,_]")
        page = to_paged(make_posts(12), params, registry=registry)
        assert ids(page) == [9, 10, 11, 12]

    def test_plain_date_on_aware_records(self, registry):
        posts = make_posts(3)
        for post in posts:
            post.created_at = post.created_at.replace(tzinfo=datetime.timezone.utc)
        page = to_paged(posts, RequestParameters(filter="created_at[2022-09-03,_]"), registry=registry)
        assert ids(page) == [2, 3]

    def test_offset_date_on_naive_records(self, registry):
        params = RequestParameters(filter="created_at[_,2022-09-03T00:00:00+00:00]")
        page = to_paged(make_posts(3), params, registry=registry)
        assert ids(page) == [1, 2]

    def test_collection_filter(self, registry):
        posts = make_posts(3)
        posts[1].labels = [Label("Important"), Label("important too")]
        page = to_paged(posts, RequestParameters(filter="labels.name[important]"), registry=registry)
        assert ids(page) == [2]
        assert page.elements == 1

    def test_explicit_model(self, registry):
        page = to_paged([], RequestParameters(filter="title[x]"), model=Post, registry=registry)
        assert page.elements == 0

    def test_filter_without_record_type(self, registry):
        with pytest.raises(InvalidArgument):
            to_paged([], RequestParameters(filter="title[x]"), registry=registry)

    def test_none_source(self):
        with pytest.raises(InvalidArgument) as exc_info:
            to_paged(None, RequestParameters())
        assert exc_info.value.details == {"argument": "source"}

    def test_none_params(self):
        with pytest.raises(InvalidArgument) as exc_info:
            to_paged(make_posts(1), None)
        assert exc_info.value.details == {"argument": "params"}

    def test_invalid_sort(self, registry):
        with pytest.raises(SortFormatError):
            to_paged(make_posts(3), RequestParameters(sort=" , "), registry=registry)

    def test_project(self, registry):
        page = to_paged(make_posts(12), RequestParameters(page=2, size=5), registry=registry)
        titles = page.project(lambda post: post.title)
        assert titles.data == ("Post 6", "Post 7", "Post 8", "Post 9", "Post 10")
        assert (titles.current, titles.elements, titles.pages) == (2, 12, 3)

    def test_assembler_uses_its_registry(self, registry):
        PageAssembler(registry).to_paged(make_posts(2), RequestParameters(filter="title[1]"))
        assert registry.is_registered(Post)


class TestErrorsBeforeSourceIsRead:
    """Every validation error is raised before the source is counted or read."""

    @pytest.fixture
    def source(self):
        source = MagicMock(spec=QueryableSource)
        source.model = Post
        source.apply_eager_load.return_value = source
        source.apply_predicate.return_value = source
        source.apply_ordering.return_value = source
        return source

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"filter": "missing[x]"},
            {"filter": "views[ten]"},
            {"filter": "created_at[_,_]"},
            {"filter": "title[x]", "sort": "missing desc"},
            {"sort": "labels.name"},
        ],
    )
    def test_source_untouched(self, source, registry, kwargs):
        with pytest.raises((ValueError, LookupError)):
            to_paged(source, RequestParameters(**kwargs), registry=registry)
        source.count.assert_not_called()
        source.materialize_slice.assert_not_called()

    def test_lookup_error(self, source, registry):
        with pytest.raises(PropertyNotFound):
            count_by_filter(source, RequestParameters(filter="missing[x]"), registry=registry)
        source.count.assert_not_called()

    def test_page_validation_precedes_everything(self):
        with pytest.raises(ValidationError):
            RequestParameters(page=0)


class TestCountByFilter:
    """Tests for count_by_filter."""

    def test_counts_matches(self, registry):
        assert count_by_filter(make_posts(12), RequestParameters(filter="title[post 1]"), registry=registry) == 4

    def test_without_filter(self, registry):
        assert count_by_filter(make_posts(12), RequestParameters(), registry=registry) == 12

    def test_sort_ignored(self, registry):
        params = RequestParameters(filter="title[post 1]", sort="missing desc")
        assert count_by_filter(make_posts(12), params, registry=registry) == 4

    def test_page_and_size_ignored(self, registry):
        assert count_by_filter(make_posts(12), RequestParameters(page=9, size=1), registry=registry) == 12


class TestAsync:
    """Async variants run on asyncio."""

    def test_ato_paged(self, registry):
        page = asyncio.run(ato_paged(make_posts(12), RequestParameters(page=2, size=5), registry=registry))
        assert ids(page) == [6, 7, 8, 9, 10]
        assert (page.elements, page.pages) == (12, 3)

    def test_matches_sync_result(self, registry):
        params = RequestParameters(page=1, size=2, filter="title[post 1]", sort="views desc")
        posts = make_posts(12)
        assert asyncio.run(ato_paged(posts, params, registry=registry)) == to_paged(posts, params, registry=registry)

    def test_acount_by_filter(self, registry):
        params = RequestParameters(filter="title[post 1]")
        assert asyncio.run(acount_by_filter(make_posts(12), params, registry=registry)) == 4

    def test_validation_error_raised_before_awaiting(self, registry):
        with pytest.raises(PropertyNotFound):
            asyncio.run(ato_paged(make_posts(3), RequestParameters(filter="missing[x]"), registry=registry))

    def test_cancellation_propagates(self, registry):
        started = asyncio.Event()
        release = asyncio.Event()
        sliced = []

        class BlockingSource(InMemorySource):
            async def acount(self):
                started.set()
                await release.wait()
                return self.count()

            async def amaterialize_slice(self, offset, limit):
                sliced.append((offset, limit))
                return self.materialize_slice(offset, limit)

        async def scenario():
            task = asyncio.create_task(
                ato_paged(BlockingSource(make_posts(12)), RequestParameters(), registry=registry)
            )
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert sliced == []

    def test_queryset_source_async(self):
        first, second = object(), object()
        queryset = MagicMock()
        queryset.acount = AsyncMock(return_value=7)
        queryset.__getitem__.return_value.__aiter__.return_value = [first, second]
        source = QuerySetSource(queryset)

        assert asyncio.run(source.acount()) == 7
        assert asyncio.run(source.amaterialize_slice(5, 5)) == (first, second)
        queryset.__getitem__.assert_called_with(slice(5, 10))


class TestAsSource:
    """Tests for as_source function."""

    def test_none(self):
        with pytest.raises(InvalidArgument):
            as_source(None)

    def test_unsupported(self):
        with pytest.raises(InvalidArgument):
            as_source({"id": 1})

    def test_source_returned_unchanged(self):
        source = InMemorySource(make_posts(1))
        assert as_source(source) is source

    def test_list_infers_model(self):
        assert as_source(make_posts(2)).model is Post

    def test_tuple_with_model(self):
        assert as_source((), model=Post).model is Post

    def test_queryset(self):
        source = as_source(Article.objects.all())
        assert isinstance(source, QuerySetSource)
        assert source.model is Article

    def test_manager(self):
        assert as_source(Article.objects).model is Article

    def test_model_class(self):
        assert as_source(Article).model is Article


class TestEagerLoad:
    """Tests for QuerySetSource.apply_eager_load."""

    def test_no_directives(self):
        source = QuerySetSource(Article.objects.all())
        assert source.apply_eager_load(None) is source

    def test_single_and_multi_valued(self):
        source = QuerySetSource(Article.objects.all()).apply_eager_load(["author__profile", "tags", "comments"])
        assert source.queryset.query.select_related == {"author": {"profile": {}}}
        assert source.queryset._prefetch_related_lookups == ("tags", "comments")

    def test_single_lookup_string(self):
        source = QuerySetSource(Article.objects.all()).apply_eager_load("author")
        assert source.queryset.query.select_related == {"author": {}}

    def test_callable(self):
        source = QuerySetSource(Article.objects.all()).apply_eager_load(lambda qs: qs.select_related("author"))
        assert source.queryset.query.select_related == {"author": {}}

    def test_in_memory_ignores_directives(self):
        source = InMemorySource(make_posts(1))
        assert source.apply_eager_load(["author"]) is source


@pytest.mark.django_db
class TestToPagedQuerySet:
    """Paging Django querysets."""

    @pytest.fixture
    def articles(self):
        author = Author.objects.create(name="Aisha Khan")
        release = Tag.objects.create(name="release")
        start = timezone.make_aware(datetime.datetime(2022, 9, 1))
        created = []
        for i in range(1, 13):
            article = Article.objects.create(
                title=f"Article {i}",
                status="active" if i % 2 else "draft",
                views=i * 10,
                author=author,
                created_at=start + datetime.timedelta(days=i),
            )
            if i % 3 == 0:
                article.tags.add(release)
            created.append(article)
        return created

    def test_second_page(self, articles, registry):
        page = to_paged(Article.objects.all(), RequestParameters(page=2, size=5, sort="views asc"), registry=registry)
        assert [a.title for a in page.data] == [f"Article {i}" for i in range(6, 11)]
        assert (page.elements, page.pages) == (12, 3)

    def test_filter_sort_and_eager_load(self, articles, registry):
        params = RequestParameters(size=10, filter="status[ACTIVE],author.name[aisha]", sort="views desc")
        page = to_paged(Article.objects, params, eager_load=["author", "tags"], registry=registry)
        assert [a.views for a in page.data] == [110, 90, 70, 50, 30, 10]
        assert page.elements == 6

    def test_collection_filter_counts_rows_once(self, articles, registry):
        params = RequestParameters(filter="tags.name[rel]", sort="views asc")
        page = to_paged(Article, params, registry=registry)
        assert [a.views for a in page.data] == [30, 60, 90, 120]
        assert page.elements == 4

    def test_date_range(self, articles, registry):
        params = RequestParameters(filter="created_at[2022-09-03,2022-09-05]", sort="created_at asc")
        page = to_paged(Article.objects.all(), params, registry=registry)
        assert [a.title for a in page.data] == ["Article 2", "Article 3", "Article 4"]

    def test_ato_paged(self, articles, registry):
        params = RequestParameters(page=2, size=5, filter="status[active]", sort="views desc")
        page = async_to_sync(ato_paged)(Article.objects.all(), params, eager_load=["author"], registry=registry)
        assert [a.views for a in page.data] == [10]
        assert (page.elements, page.pages) == (6, 2)

    def test_acount_by_filter(self, articles, registry):
        params = RequestParameters(filter="tags.name[release]")
        assert async_to_sync(acount_by_filter)(Article.objects.all(), params, registry=registry) == 4

    def test_count_by_filter(self, articles, registry):
        params = RequestParameters(filter="status[draft]", sort="views desc")
        assert count_by_filter(Article.objects.all(), params, registry=registry) == 6

    def test_to_dict(self, articles, registry):
        page = to_paged(Article.objects.all(), RequestParameters(size=1, sort="views desc"), registry=registry)
        assert page.to_dict(fields=["title", "status", "author.name"]) == {
            "data": [{"title": "Article 12", "status": "draft", "author": {"name": "Aisha Khan"}}],
            "current": 1,
            "size": 1,
            "elements": 12,
            "pages": 12,
        }


class TestLogging:
    """Built predicates and orderings are logged when LOG_QUERIES is set."""

    @override_settings(DJANGO_PAGEABLE={"LOG_QUERIES": True})
    def test_logs_when_enabled(self, registry, caplog):
        with caplog.at_level(logging.INFO, logger="django_pageable"):
            to_paged(make_posts(3), RequestParameters(filter="title[1]", sort="views"), registry=registry)
        messages = [record.getMessage() for record in caplog.records]
        assert any(message.startswith("Built predicate for Post") for message in messages)
        assert any(message.startswith("Built ordering for Post") for message in messages)

    def test_silent_by_default(self, registry, caplog):
        with caplog.at_level(logging.INFO, logger="django_pageable"):
            to_paged(make_posts(3), RequestParameters(filter="title[1]"), registry=registry)
        assert not [record for record in caplog.records if record.levelno >= logging.INFO]
