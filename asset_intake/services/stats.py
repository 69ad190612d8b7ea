"""Dashboard summary: totals per company, department and asset type.

`summarize()` is pure so it can be tested without a database;
`submission_stats()` runs it over the record store and caches the result
in Redis until the next insert or delete.
"""

from collections import Counter

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from asset_intake.models.submission import Submission
from asset_intake.services.submissions import all_images
from asset_intake.utils.cache import cached


def summarize(rows) -> dict:
    """rows: iterables of (company, department, selected_assets, asset_details)."""
    by_company: Counter = Counter()
    by_department: Counter = Counter()
    by_asset: Counter = Counter()
    total = 0
    images = 0
    for company, department, selected_assets, asset_details in rows:
        total += 1
        by_company[company] += 1
        by_department[department] += 1
        by_asset.update(selected_assets or [])
        images += len(all_images(asset_details))
    return {
        "total": total,
        "by_company": dict(by_company.most_common()),
        "by_department": dict(by_department.most_common()),
        "by_asset": dict(by_asset.most_common()),
        "images": images,
    }


@cached(ttl=300, prefix="submissions")
async def submission_stats(db: AsyncSession) -> dict:
    result = await db.execute(
        select(
            Submission.company,
            Submission.department,
            Submission.selected_assets,
            Submission.asset_details,
        )
    )
    return summarize(result.all())
