"""
Sample journey datasets for the PearlCard fare engine.

Posts a dataset to a running API and prints how each journey was charged.
"""

import sys

import requests


SAMPLE_DATASETS = {
    "saturday": {
        "description": "A Saturday of mixed zone 1/2 travel that reaches the daily cap",
        "journeys": [
            {"date_time": "2024-11-09T08:30:00", "from_zone": 1, "to_zone": 1},
            {"date_time": "2024-11-09T09:15:00", "from_zone": 1, "to_zone": 2},
            {"date_time": "2024-11-09T12:00:00", "from_zone": 2, "to_zone": 1},
            {"date_time": "2024-11-09T14:30:00", "from_zone": 1, "to_zone": 1},
            {"date_time": "2024-11-09T17:45:00", "from_zone": 1, "to_zone": 2},
            {"date_time": "2024-11-09T18:30:00", "from_zone": 2, "to_zone": 1},
            {"date_time": "2024-11-09T19:15:00", "from_zone": 1, "to_zone": 1},
        ],
    },
    "commuter-week": {
        "description": "A zone 2-2 working week, five journeys a day, reaching the weekly cap",
        "journeys": [
            {"date_time": f"2024-11-{day:02d}T{hour:02d}:00:00", "from_zone": 2, "to_zone": 2}
            for day in range(4, 9)
            for hour in range(8, 13)
        ] + [
            {"date_time": "2024-11-08T13:00:00", "from_zone": 2, "to_zone": 2},
        ],
    },
}


def submit_dataset(name: str, base_url: str = "http://localhost:8000"):
    """
    Post one sample dataset to the fare API and print the result.

    Args:
        name: Key of the dataset in SAMPLE_DATASETS
        base_url: API base URL
    """
    dataset = SAMPLE_DATASETS[name]
    print(f"{name}: {dataset['description']}")

    response = requests.post(
        f"{base_url}/api/calculate-fares",
        json={"journeys": dataset["journeys"]},
        timeout=10,
    )
    if response.status_code != 200:
        print(f"✗ Request failed ({response.status_code}): {response.text}")
        return

    result = response.json()
    for transaction in result["transactions"]:
        journey = transaction["journey"]
        print(
            f"  {journey['date_time']}  {journey['from_zone']}→{journey['to_zone']}  "
            f"{transaction['charged_fare']:>3}p  {transaction['explanation']}"
        )
    print(f"Total charged: {result['total_fare']}p")
    state = result["final_state"]
    print(
        f"Daily {state['daily_total']}/{state['current_applicable_daily_cap']}p, "
        f"weekly {state['weekly_total']}/{state['current_applicable_weekly_cap']}p"
    )


def show_usage():
    """Show usage instructions."""
    print("Usage:")
    print("  python sample_journeys.py list")
    print("  python sample_journeys.py <dataset> [base_url]")
    print(f"\nDatasets: {', '.join(SAMPLE_DATASETS)}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        show_usage()
    elif sys.argv[1] == "list":
        for key, dataset in SAMPLE_DATASETS.items():
            print(f"{key:<15} {len(dataset['journeys']):>3} journeys  {dataset['description']}")
    elif sys.argv[1] in SAMPLE_DATASETS:
        submit_dataset(sys.argv[1], *sys.argv[2:3])
    else:
        show_usage()
