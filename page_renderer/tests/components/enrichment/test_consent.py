import pytest

from page_renderer.components.enrichment.consent import (
    CONSENT_CANDIDATES,
    MAIN_SCOPE,
    dismiss_consent,
    is_consent_frame,
    iter_candidates,
)


@pytest.mark.parametrize("url, expected", [
    ("https://consent.youtube.com/m?continue=x", True),
    ("https://consent.google.com/ml?x", True),
    ("https://consent.google.co.uk/", True),
    ("https://www.youtube.com/embed/abc", False),
    ("https://evil.example/consent.youtube.com/", False),
    ("", False),
])
def test_is_consent_frame(url, expected):
    assert is_consent_frame(url) is expected


def test_iter_candidates_main_frame_first_then_consent_frames(fake_page, fake_frame):
    consent_frame = fake_frame("https://consent.youtube.com/m")
    ad_frame = fake_frame("https://ads.example.com/frame")
    page = fake_page(frames=[ad_frame, consent_frame])

    pairs = list(iter_candidates(page))
    main_count = sum(1 for scope, _ in CONSENT_CANDIDATES if scope == MAIN_SCOPE)

    assert all(frame is page.main_frame for frame, _ in pairs[:main_count])
    assert all(frame is consent_frame for frame, _ in pairs[main_count:])
    assert pairs[main_count][1] == "#introAgreeButton"
    assert ad_frame not in [frame for frame, _ in pairs]


@pytest.mark.asyncio
async def test_no_dialog_is_not_dismissed(fake_page):
    page = fake_page()
    result = await dismiss_consent(page)

    assert result.dismissed is False
    assert "wait_for_timeout" not in page.call_names()


@pytest.mark.asyncio
async def test_clicks_first_visible_main_frame_candidate(fake_page, fake_frame, fake_element):
    hidden = fake_element(visible=False)
    visible = fake_element()
    later = fake_element()
    main = fake_frame("https://www.youtube.com/watch?v=abc", elements={
        "button[aria-label*='Accept all']": hidden,
        "#L2AGLb": visible,
    })
    consent_frame = fake_frame("https://consent.youtube.com/m", elements={"#introAgreeButton": later})
    page = fake_page(main_frame=main, frames=[consent_frame])

    result = await dismiss_consent(page, settle_ms=250)

    assert result.dismissed is True
    assert result.selector == "#L2AGLb"
    assert hidden.clicks == 0 and visible.clicks == 1 and later.clicks == 0
    assert consent_frame.queries == []
    assert page.calls == [("wait_for_timeout", 250)]


@pytest.mark.asyncio
async def test_falls_back_to_consent_frame(fake_page, fake_frame, fake_element):
    agree = fake_element()
    consent_frame = fake_frame("https://consent.youtube.com/m", elements={"#introAgreeButton": agree})
    page = fake_page(frames=[consent_frame])

    result = await dismiss_consent(page)

    assert result.dismissed is True
    assert result.frame_url == "https://consent.youtube.com/m"
    assert agree.clicks == 1


@pytest.mark.asyncio
async def test_failed_click_moves_on_to_next_candidate(fake_page, fake_frame, fake_element):
    broken = fake_element(click_error=Exception("Element is detached"))
    working = fake_element()
    main = fake_frame(elements={
        "button[aria-label*='Accept all']": broken,
        "button:has-text('Accept all')": working,
    })
    page = fake_page(main_frame=main)

    result = await dismiss_consent(page)

    assert result.dismissed is True
    assert result.selector == "button:has-text('Accept all')"
    assert working.clicks == 1
