"""Tests for print composition and image settling."""

import asyncio
import threading

from app.views.print_view import ImageLoadState, PrintComposer, PrintImage, PrintView
from core.models import PhotoCard, Report
from infrastructure.image_service import to_data_uri


def _report(cards, **fields) -> Report:
    return Report(client_name="Acme", property_name="12 Elm", photos=cards, **fields)


def _image_card(i: int) -> PhotoCard:
    return PhotoCard(preview_image=f"data:p,{i}", print_image=f"data:q,{i}", caption=f"c{i}")


def _fixed_loader(uri):
    return (4, 3)


class TestBuild:
    def test_thirteen_cards_paginate_six_six_one(self):
        view = PrintComposer(image_loader=_fixed_loader).build(
            _report([_image_card(i) for i in range(13)])
        )
        assert [len(p.photos) for p in view.pages] == [6, 6, 1]
        assert view.photo_count == 13
        assert [p.caption for p in view.pages[1].photos] == [f"c{i}" for i in range(6, 12)]

    def test_blank_cards_are_skipped_and_caption_only_kept(self):
        cards = [PhotoCard(), PhotoCard(caption="Note only"), PhotoCard(), _image_card(1)]
        view = PrintComposer().build(_report(cards))
        photos = view.pages[0].photos
        assert len(photos) == 2
        assert photos[0].image is None
        assert photos[0].caption == "Note only"
        assert photos[1].image.uri == "data:q,1"

    def test_preview_used_when_print_missing(self):
        card = PhotoCard(preview_image="data:p,only")
        view = PrintComposer().build(_report([card]))
        assert view.pages[0].photos[0].image.uri == "data:p,only"

    def test_no_photos_no_pages(self):
        view = PrintComposer().build(_report([PhotoCard()] * 3, summary="Nothing to show"))
        assert not view.has_photos
        assert view.pages == []
        assert view.summary == "Nothing to show"

    def test_header_fields_copied(self):
        view = PrintComposer().build(
            _report([], report_date="2024-05-01", prepared_by="J. Doe", summary="s")
        )
        assert (view.client_name, view.property_name) == ("Acme", "12 Elm")
        assert (view.report_date, view.prepared_by) == ("2024-05-01", "J. Doe")

    def test_each_build_is_a_new_view(self):
        composer = PrintComposer()
        report = _report([_image_card(1)])
        first, second = composer.build(report), composer.build(report)
        assert first is not second
        assert first.pages[0].photos[0].image is not second.pages[0].photos[0].image

    def test_blank_cards_do_not_leave_gaps_in_pages(self):
        cards = []
        for i in range(7):
            cards.extend([_image_card(i), PhotoCard()])
        view = PrintComposer().build(_report(cards))
        assert [len(p.photos) for p in view.pages] == [6, 1]
        assert view.pages[1].photos[0].caption == "c6"

    def test_custom_page_size(self):
        view = PrintComposer(photos_per_page=4).build(_report([_image_card(i) for i in range(9)]))
        assert [len(p.photos) for p in view.pages] == [4, 4, 1]


class TestWaitForImages:
    def test_images_load_concurrently(self):
        barrier = threading.Barrier(3, timeout=5)

        def _loader(uri):
            barrier.wait()
            return (10, 20)

        view = asyncio.run(
            PrintComposer(image_loader=_loader).prepare(_report([_image_card(i) for i in range(3)]))
        )
        states = [img.state for img in view.images()]
        assert states == [ImageLoadState.LOADED] * 3
        assert all((img.width, img.height) == (10, 20) for img in view.images())

    def test_broken_image_fails_without_raising(self, make_image):
        good = to_data_uri(make_image(size=(8, 6)), "image/png")
        cards = [
            PhotoCard(print_image=good),
            PhotoCard(print_image="data:image/jpeg;base64,////"),
            PhotoCard(print_image="not-a-data-uri"),
        ]
        view = asyncio.run(PrintComposer().prepare(_report(cards)))
        images = list(view.images())
        assert images[0].state is ImageLoadState.LOADED
        assert (images[0].width, images[0].height) == (8, 6)
        assert [img.state for img in images[1:]] == [ImageLoadState.FAILED] * 2
        assert all(img.error for img in images[1:])

    def test_already_settled_images_are_not_reloaded(self):
        calls = []

        def _loader(uri):
            calls.append(uri)
            return (1, 1)

        view = PrintView()
        composer = PrintComposer(image_loader=_loader)
        view.pages = composer.build(_report([_image_card(1)])).pages
        view.pages[0].photos[0].image = PrintImage(uri="x", state=ImageLoadState.LOADED)
        asyncio.run(composer.wait_for_images(view))
        assert calls == []

    def test_empty_view_returns_immediately(self):
        asyncio.run(PrintComposer().wait_for_images(PrintView()))
