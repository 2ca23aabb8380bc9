"""
Season/episode marker extraction from display titles.

Two literal grammars are recognized, tried in order over the whole title:

- ``S<digits>[ ]E<digits>`` (letters in either case), e.g. ``Show S01E02``
  or ``Show (2023) S1 E5``
- ``<digits>x<digits>``, e.g. ``Show 1x02``

The series name is the whitespace-trimmed text before the marker.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SeriesInfo:
    """Series name plus season/episode numbers parsed from a title."""

    series_name: str
    season: int
    episode: int


def _digit_run_end(text: str, start: int) -> int:
    end = start
    while end < len(text) and text[end].isdigit():
        end += 1
    return end


def _match_season_episode(title: str, i: int) -> tuple[int, int, int] | None:
    """
    Match ``S<digits>[ ]E<digits>`` at position ``i``.

    Returns (season, episode, end) without validating the numbers.
    """
    if title[i] not in "Ss":
        return None

    season_start = i + 1
    season_end = _digit_run_end(title, season_start)
    if season_end == season_start:
        return None

    e_pos = season_end
    if e_pos < len(title) and title[e_pos] == " ":
        e_pos += 1
    if e_pos >= len(title) or title[e_pos] not in "Ee":
        return None

    episode_start = e_pos + 1
    episode_end = _digit_run_end(title, episode_start)
    if episode_end == episode_start:
        return None

    return int(title[season_start:season_end]), int(title[episode_start:episode_end]), episode_end


def has_episode_marker(title: str) -> bool:
    """True when the title carries an ``S<n>E<n>`` marker anywhere."""
    for i in range(len(title)):
        if _match_season_episode(title, i) is not None:
            return True
    return False


def _extract_season_episode(title: str) -> SeriesInfo | None:
    for i in range(len(title)):
        match = _match_season_episode(title, i)
        if match is None:
            continue
        season, episode, _ = match
        series_name = title[:i].strip()
        if series_name and season > 0 and episode > 0:
            return SeriesInfo(series_name, season, episode)
    return None


def _extract_cross_notation(title: str) -> SeriesInfo | None:
    i = 0
    while i < len(title):
        if not title[i].isdigit():
            i += 1
            continue

        season_end = _digit_run_end(title, i)
        if (
            season_end + 1 < len(title)
            and title[season_end] == "x"
            and title[season_end + 1].isdigit()
        ):
            episode_end = _digit_run_end(title, season_end + 1)
            season = int(title[i:season_end])
            episode = int(title[season_end + 1:episode_end])
            series_name = title[:i].strip()
            if series_name and season > 0 and episode > 0:
                return SeriesInfo(series_name, season, episode)

        # Resume after the whole digit run so "112x05" is never read as "12x05"
        i = season_end
    return None


def extract_series_info(title: str) -> SeriesInfo | None:
    """
    Extract series name, season and episode from an episode title.

    Returns None when neither grammar matches with a non-empty series name
    and positive season/episode numbers.
    """
    return _extract_season_episode(title) or _extract_cross_notation(title)
