import json

import main

TICKETMASTER_BATCH = {
    "events": [
        {
            "title": "Hamilton: An American Musical",
            "description": "No description available",
            "category": "theatre",
            "startDate": "2025-01-01T19:30:00",
            "venue": {"name": "Princess Theatre Melbourne", "address": "163 Spring St",
                      "suburb": "Melbourne"},
            "priceMin": 45,
            "priceMax": 160,
            "source": "ticketmaster",
            "sourceId": "tm-ham-1",
        },
        {"title": "Broken record", "source": "ticketmaster"},
    ]
}

MARRINER_BATCH = [
    {
        "title": "Hamilton",
        "description": "The story of America then, told by America now.",
        "category": "theatre",
        "startDate": "2025-01-01T19:30:00",
        "endDate": "2025-03-30T19:30:00",
        "venue": {"name": "Princess Theatre", "address": "TBA", "suburb": "Melbourne"},
        "priceMin": 59,
        "priceMax": 150,
        "source": "marriner",
        "sourceId": "hamilton",
    },
    {
        "title": "Moulin Rouge! The Musical",
        "startDate": "2025-05-01T19:30:00",
        "venue": {"name": "Regent Theatre"},
        "source": "marriner",
        "sourceId": "moulin-rouge",
    },
]


def _write(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_main_writes_canonical_events(tmp_path):
    tm = _write(tmp_path / "ticketmaster.json", TICKETMASTER_BATCH)
    marriner = _write(tmp_path / "marriner.json", MARRINER_BATCH)
    output = tmp_path / "out" / "events.json"
    matches = tmp_path / "out" / "matches.json"

    main.main([str(tm), str(marriner), "-o", str(output), "--matches", str(matches)])

    feed = json.loads(output.read_text(encoding="utf-8"))
    assert feed["count"] == 2
    hamilton, moulin_rouge = feed["events"]
    assert hamilton["title"] == "Hamilton"
    assert hamilton["id"] == "marriner:hamilton"
    assert hamilton["venue"]["address"] == "163 Spring St"
    assert (hamilton["price_min"], hamilton["price_max"]) == (45, 160)
    assert hamilton["description"].startswith("The story of America")
    assert hamilton["merged_from"] == ["marriner:hamilton", "ticketmaster:tm-ham-1"]
    assert moulin_rouge["title"] == "Moulin Rouge! The Musical"

    report = json.loads(matches.read_text(encoding="utf-8"))
    assert report["count"] == 1
    assert report["matches"][0]["reason"].endswith("(t:95 d:100 v:100)")
    assert report["clusters"] == [["ticketmaster:tm-ham-1", "marriner:hamilton"]]


def test_threshold_flag(tmp_path):
    tm = _write(tmp_path / "ticketmaster.json", TICKETMASTER_BATCH)
    marriner = _write(tmp_path / "marriner.json", MARRINER_BATCH)
    output = tmp_path / "events.json"

    main.main([str(tm), str(marriner), "-o", str(output), "--threshold", "0.99"])

    feed = json.loads(output.read_text(encoding="utf-8"))
    assert feed["count"] == 3


def test_load_events_skips_unreadable(tmp_path):
    path = _write(tmp_path / "batch.json", TICKETMASTER_BATCH)
    events = main.load_events(path)
    assert [e.title for e in events] == ["Hamilton: An American Musical"]


def test_mixed_offset_and_naive_dates(tmp_path):
    utc = _write(tmp_path / "ticketmaster.json", [{
        "title": "Hamilton",
        "startDate": "2025-01-01T19:30:00Z",
        "venue": {"name": "Princess Theatre"},
        "source": "ticketmaster",
        "sourceId": "tm-1",
    }])
    naive = _write(tmp_path / "marriner.json", [
        {
            "title": "Hamilton",
            "startDate": "2025-01-01T19:30:00",
            "venue": {"name": "Princess Theatre"},
            "source": "marriner",
            "sourceId": "hamilton",
        },
        {
            "title": "Wicked",
            "startDate": "2025-02-01T19:30:00",
            "venue": {"name": "Regent Theatre"},
            "source": "marriner",
            "sourceId": "wicked",
        },
    ])
    output = tmp_path / "events.json"

    main.main([str(utc), str(naive), "-o", str(output)])

    feed = json.loads(output.read_text(encoding="utf-8"))
    assert [e["id"] for e in feed["events"]] == ["marriner:hamilton", "marriner:wicked"]
    assert feed["events"][0]["start_date"] == "2025-01-01T19:30:00"


def test_default_output_relative_to_working_directory():
    assert not main.OUTPUT_FILE.is_absolute()
    assert main.OUTPUT_FILE == main.Path("docs") / "events.json"


def test_matches_report_scans_once(tmp_path, monkeypatch):
    tm = _write(tmp_path / "ticketmaster.json", TICKETMASTER_BATCH)
    marriner = _write(tmp_path / "marriner.json", MARRINER_BATCH)
    calls = []
    scan = main.find_duplicates

    def counting_scan(*args, **kwargs):
        calls.append(args)
        return scan(*args, **kwargs)

    monkeypatch.setattr(main, "find_duplicates", counting_scan)
    monkeypatch.setattr("dedup.find_duplicates", counting_scan)
    main.main([str(tm), str(marriner), "-o", str(tmp_path / "events.json"),
               "--matches", str(tmp_path / "matches.json")])

    assert len(calls) == 1
