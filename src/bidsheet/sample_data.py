"""Built-in records shown when the spreadsheet cannot be reached."""

from datetime import UTC, datetime

from bidsheet.models import AuctionItem

_SAMPLE_ROWS = [
    {
        "product_url": "https://auction.example.com/items/lv-neverfull-mm",
        "brand_name": "LOUIS VUITTON",
        "assignee": "吉川さん",
    },
    {
        "product_url": "https://auction.example.com/items/hermes-birkin-30",
        "brand_name": "HERMES",
        "check": True,
        "bid_target": True,
        "assignee": "伊藤さん",
        "market_price": 1_850_000,
        "bid_price": 1_480_000,
        "wholesale_price": 1_620_000,
        "reference_url1": "https://market.example.com/hermes/birkin-30",
        "notes": "付属品: 保存袋・カデナ",
    },
    {
        "product_url": "https://auction.example.com/items/chanel-matelasse-25",
        "brand_name": "CHANEL",
        "check": True,
        "bid_target": True,
        "assignee": "望月さん",
        "market_price": 420_000,
        "bid_price": 336_000,
        "wholesale_price": 378_000,
        "reference_url1": "https://market.example.com/chanel/matelasse-25",
        "representative_check": True,
        "judgment_result": False,
        "feedback": "相場の根拠が古いです。直近3ヶ月の落札事例を追加してください。",
    },
    {
        "product_url": "https://auction.example.com/items/gucci-ophidia-gg",
        "brand_name": "グッチ",
        "check": True,
        "assignee": "折出さん",
        "notes": "状態ランクC。入札見送り",
        "representative_check": True,
        "judgment_result": True,
        "feedback": "判断OKです。",
        "feedback_confirmed": True,
    },
]


def sample_items() -> list[AuctionItem]:
    """Return fresh copies of the sample records, ids starting at row 2."""
    now = datetime.now(UTC)
    return [
        AuctionItem(id=str(row_number), created_at=now, updated_at=now, **fields)
        for row_number, fields in enumerate(_SAMPLE_ROWS, start=2)
    ]
