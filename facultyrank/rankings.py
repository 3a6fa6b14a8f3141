"""
Institutional prestige lookup.

Maps a free-text institution name to NIRF (India) and QS (world) ranks
from a static reference table, then normalizes each rank to a 0-10 score.

Matching is best effort and order sensitive. For a lowercased query:
1. exact match on the canonical name
2. query contains a canonical name, or a canonical name contains the query
3. query contains one of an entry's short names
Within each step the first entry in table order wins, so ambiguous
queries resolve to whichever institution is listed first.
"""

from typing import Any, Dict, NamedTuple, Optional, Tuple

from .errors import ValidationError

NIRF_RANK_SPAN = 100
QS_RANK_SPAN = 1500


class PrestigeEntry(NamedTuple):
    name: str
    short_names: Tuple[str, ...]
    nirf: Optional[int]
    qs: Optional[int]


class PrestigeScores(NamedTuple):
    nirf10: Optional[float]
    qs10: Optional[float]

    @property
    def is_empty(self) -> bool:
        return self.nirf10 is None and self.qs10 is None


NO_PRESTIGE = PrestigeScores(None, None)

# NIRF India Rankings 2024 / QS World University Rankings 2024.
# Row order is the tie-break for ambiguous names; do not sort.
UNIVERSITY_RANKINGS: Tuple[PrestigeEntry, ...] = (
    # IITs
    PrestigeEntry("Indian Institute of Technology Madras", ("iit madras",), 1, 227),
    PrestigeEntry("Indian Institute of Technology Delhi", ("iit delhi",), 2, 197),
    PrestigeEntry("Indian Institute of Technology Bombay", ("iit bombay",), 3, 149),
    PrestigeEntry("Indian Institute of Technology Kanpur", ("iit kanpur",), 4, 263),
    PrestigeEntry("Indian Institute of Technology Kharagpur", ("iit kharagpur",), 6, 271),
    PrestigeEntry("Indian Institute of Technology Roorkee", ("iit roorkee",), 7, 369),
    PrestigeEntry("Indian Institute of Technology Guwahati", ("iit guwahati",), 8, 384),
    PrestigeEntry("Indian Institute of Technology Hyderabad", ("iit hyderabad",), 9, 441),
    PrestigeEntry("Indian Institute of Technology Indore", ("iit indore",), 11, None),
    PrestigeEntry("Indian Institute of Technology (BHU) Varanasi", ("iit bhu", "iit varanasi"), 12, 601),
    PrestigeEntry("Indian Institute of Technology Gandhinagar", ("iit gandhinagar",), 13, None),
    PrestigeEntry("Indian Institute of Technology Ropar", ("iit ropar",), 14, None),
    PrestigeEntry("Indian Institute of Technology Bhubaneswar", ("iit bhubaneswar",), 15, None),
    PrestigeEntry("Indian Institute of Technology Jodhpur", ("iit jodhpur",), 16, None),
    PrestigeEntry("Indian Institute of Technology Patna", ("iit patna",), 20, None),
    PrestigeEntry("Indian Institute of Technology Mandi", ("iit mandi",), 41, 1100),
    PrestigeEntry("Indian Institute of Technology (ISM) Dhanbad", ("iit ism", "iit dhanbad"), 17, None),
    PrestigeEntry("Indian Institute of Technology Tirupati", ("iit tirupati",), None, None),
    PrestigeEntry("Indian Institute of Technology Palakkad", ("iit palakkad",), None, None),
    PrestigeEntry("Indian Institute of Technology Jammu", ("iit jammu",), None, None),
    PrestigeEntry("Indian Institute of Technology Goa", ("iit goa",), None, None),
    PrestigeEntry("Indian Institute of Technology Bhilai", ("iit bhilai",), None, None),
    PrestigeEntry("Indian Institute of Technology Dharwad", ("iit dharwad",), None, None),
    # IISc and IISERs
    PrestigeEntry("Indian Institute of Science", ("iisc", "iisc bangalore"), 1, 225),
    PrestigeEntry("Indian Institute of Science Education and Research Pune", ("iiser pune",), 24, None),
    PrestigeEntry("Indian Institute of Science Education and Research Kolkata", ("iiser kolkata",), None, None),
    PrestigeEntry("Indian Institute of Science Education and Research Mohali", ("iiser mohali",), None, None),
    PrestigeEntry(
        "Indian Institute of Science Education and Research Thiruvananthapuram",
        ("iiser trivandrum", "iiser thiruvananthapuram"),
        None,
        None,
    ),
    PrestigeEntry("Indian Institute of Science Education and Research Bhopal", ("iiser bhopal",), None, None),
    PrestigeEntry("Indian Institute of Science Education and Research Tirupati", ("iiser tirupati",), None, None),
    # NITs
    PrestigeEntry("National Institute of Technology Tiruchirappalli", ("nit trichy", "nit tiruchirappalli"), 10, 601),
    PrestigeEntry("National Institute of Technology Karnataka, Surathkal", ("nit karnataka", "nitk", "nit surathkal"), 19, 801),
    PrestigeEntry("National Institute of Technology Rourkela", ("nit rourkela",), 21, None),
    PrestigeEntry("National Institute of Technology Warangal", ("nit warangal",), 35, None),
    PrestigeEntry("National Institute of Technology Calicut", ("nit calicut",), 38, None),
    # Central universities
    PrestigeEntry("University of Delhi", ("delhi university", "du"), 11, 407),
    PrestigeEntry("Jawaharlal Nehru University", ("jnu",), 2, 1220),
    PrestigeEntry("Banaras Hindu University", ("bhu",), 13, 801),
    PrestigeEntry("Aligarh Muslim University", ("amu",), 15, 801),
    PrestigeEntry("University of Hyderabad", ("uoh",), 23, 801),
    PrestigeEntry("Jamia Millia Islamia", ("jamia",), 3, 801),
    # Deemed universities
    PrestigeEntry("Birla Institute of Technology and Science, Pilani", ("bits pilani", "bits"), 28, 801),
    PrestigeEntry("Manipal Academy of Higher Education", ("manipal",), 15, 801),
    PrestigeEntry("Amity University", ("amity",), 25, 1001),
    PrestigeEntry("VIT University, Vellore", ("vit", "vit vellore"), 11, 801),
    PrestigeEntry("SRM Institute of Science and Technology", ("srm",), 18, 801),
    PrestigeEntry("Thapar Institute of Engineering and Technology", ("thapar",), 27, None),
    PrestigeEntry("KIIT University", ("kiit",), 25, None),
    PrestigeEntry("Lovely Professional University", ("lpu",), 39, None),
    PrestigeEntry("Shiv Nadar University", ("shiv nadar",), 50, None),
    # State universities
    PrestigeEntry("Anna University", ("anna university",), 18, 427),
    PrestigeEntry("Jadavpur University", ("jadavpur",), 12, 801),
    # IIITs
    PrestigeEntry("Indian Institute of Information Technology Hyderabad", ("iiit hyderabad", "iiith"), 55, None),
    PrestigeEntry("Indian Institute of Information Technology Allahabad", ("iiit allahabad", "iiita"), 101, None),
    # Private universities
    PrestigeEntry("BML Munjal University", ("bml munjal", "bmu"), 68, None),
    PrestigeEntry("Ashoka University", ("ashoka",), 2, None),
    PrestigeEntry("O.P. Jindal Global University", ("jindal",), 50, None),
    PrestigeEntry("Christ University", ("christ",), 54, None),
    PrestigeEntry("Amrita Vishwa Vidyapeetham", ("amrita",), 7, 801),
    # Specialized institutions
    PrestigeEntry("Delhi Technological University", ("dtu",), 34, None),
    PrestigeEntry("Netaji Subhas University of Technology", ("nsut", "nsit"), 58, None),
    PrestigeEntry("Institute of Chemical Technology, Mumbai", ("ict", "ict mumbai"), 45, None),
)


def rank_to_score10(rank: Optional[int], span: int) -> Optional[float]:
    """Linear 0-10 score: rank 1 scores 10, rank ``span + 1`` and beyond score 0."""
    if rank is None:
        return None
    return round(10 * max(0.0, 1 - (rank - 1) / span), 1)


class PrestigeResolver:
    """Resolves institution names against a reference table."""

    def __init__(self, table: Tuple[PrestigeEntry, ...] = UNIVERSITY_RANKINGS):
        # Lowercased once; the table is never mutated after construction
        self._rows = tuple(
            (entry, entry.name.lower(), tuple(s.lower() for s in entry.short_names))
            for entry in table
        )

    def find_entry(self, institution: Optional[str]) -> Optional[PrestigeEntry]:
        if institution is None:
            return None
        if not isinstance(institution, str):
            raise ValidationError(f"Institution name must be a string, got {type(institution).__name__}")
        query = institution.strip().lower()
        if not query:
            return None

        for entry, name, _ in self._rows:
            if name == query:
                return entry
        for entry, name, _ in self._rows:
            if name in query or query in name:
                return entry
        for entry, _, short_names in self._rows:
            if any(short in query for short in short_names):
                return entry
        return None

    def resolve(self, institution: Optional[str]) -> PrestigeScores:
        entry = self.find_entry(institution)
        if entry is None:
            return NO_PRESTIGE
        return PrestigeScores(
            nirf10=rank_to_score10(entry.nirf, NIRF_RANK_SPAN),
            qs10=rank_to_score10(entry.qs, QS_RANK_SPAN),
        )

    def describe(self, institution: Optional[str]) -> Dict[str, Any]:
        """Matched entry, raw ranks and normalized scores for one query."""
        entry = self.find_entry(institution)
        scores = self.resolve(institution)
        return {
            "query": institution,
            "match": entry.name if entry else None,
            "nirf_rank": entry.nirf if entry else None,
            "qs_rank": entry.qs if entry else None,
            "nirf_score10": scores.nirf10,
            "qs_score10": scores.qs10,
        }
