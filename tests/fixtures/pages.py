"""evaluate(COLLECT_FIELDS_SCRIPT) 결과 자산

선택자 선언 순서대로 후보가 들어 있습니다.
"""

RAW_FIELDS = {
    "amazon_in_stock": {
        "title": ["Apple iPhone 15 (128 GB) - Black", None],
        "price": ["₹1,54,900", None, None, None],
        "image": ["https://m.media-amazon.com/images/I/71d7rfSl0wL.jpg", None],
        "availability": ["In stock", None],
        "discount": ["-12%", None],
        "jsonld_images": [],
        "body_text": "",
    },
    "amazon_unavailable": {
        "title": ["Apple iPhone 15 (128 GB) - Black", None],
        "price": ["₹79,900", None, None, None],
        "image": [None, None],
        "availability": ["Currently unavailable.", None],
        "discount": [None, None],
        "jsonld_images": [{"url": "https://m.media-amazon.com/images/I/jsonld.jpg"}],
        "body_text": "",
    },
    "amazon_no_price": {
        "title": ["Apple iPhone 15 (128 GB) - Black", None],
        "price": [None, "", None, None],
        "image": [None, None],
        "availability": [None, None],
        "discount": [None, None],
        "jsonld_images": [],
        "body_text": "Customer rating 4.5 out of 5 stars. Qty: 1",
    },
    "amazon_price_in_text": {
        "title": ["Apple iPhone 15 (128 GB) - Black", None],
        "price": [None, None, None, None],
        "image": [None, None],
        "availability": ["Only 2 left in stock - order soon.", None],
        "discount": [None, None],
        "jsonld_images": [],
        "body_text": "EMI from ₹500/month. M.R.P.: ₹89,900 Deal price ₹79,900 FREE delivery",
    },
    "flipkart_no_availability": {
        "title": [None, None, "APPLE iPhone 15 (Black, 128 GB)", None, None],
        "price": ["₹65,999"],
        "image": [None, "https://rukminim2.flixcart.com/image/416/416/iphone.jpeg"],
        "availability": [None],
        "discount": ["11% off"],
        "jsonld_images": [],
        "body_text": "",
    },
}


# COLLECT_REVIEWS_SCRIPT가 돌려주는 리뷰 카드 목록
RAW_REVIEWS = {
    "amazon": [
        {
            "rating": "5.0 out of 5 stars",
            "title": "Worth every rupee",
            "text": "Battery easily lasts a full day.",
            "reviewer": "Ananya",
            "date": "Reviewed in India on 3 March 2024",
            "verified": True,
            "helpful": "1,204 people found this helpful",
        },
        {
            "rating": "4.0 out of 5 stars",
            "title": None,
            "text": "Camera is great, charger not included.",
            "reviewer": None,
            "date": None,
            "verified": False,
            "helpful": "One person found this helpful",
        },
        {
            # 평점 없는 카드 (광고/요약 블록)
            "rating": None,
            "title": "Top reviews from India",
            "text": None,
            "reviewer": None,
            "date": None,
            "verified": False,
            "helpful": None,
        },
        {
            "rating": "3.0 out of 5 stars",
            "title": "   ",
            "text": "",
            "reviewer": "Rahul",
            "date": None,
            "verified": True,
            "helpful": None,
        },
    ],
    "flipkart": [
        {
            "rating": "5",
            "title": None,
            "text": "Super phone, fast delivery READ MORE",
            "reviewer": "Flipkart Customer",
            "date": "2 months ago",
            "verified": True,
            "helpful": "87",
        },
        {
            "rating": "4",
            "title": None,
            "text": "Good but heats while gaming",
            "reviewer": "Vikram Singh",
            "date": "Jan, 2024",
            "verified": False,
            "helpful": None,
        },
    ],
}
