from math import ceil
from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user
from ..models import Listing
from ..services import listing_engine, image_manager, ListingFilters, SortField, SortOrder, apply_listing_payload
from ..utils.errors import InvalidArgumentError, NotFoundError, error_from_outcome
from ..utils.logger import get_logger, log_requests
from ..utils.Response import ApiResponse

listing_bp = Blueprint('listing_api', __name__)

def _int_arg(name, default):
    value = request.args.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidArgumentError(f"参数 {name} 必须是整数: {value}")

def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgumentError("请求体不能为空")
    return data

def _counts(pairs, key):
    """统计结果转成列表，保持排序"""
    return [{key: value, "count": count} for value, count in pairs.items()]

# ---------------- 车源浏览 ----------------

@listing_bp.route('', methods=['GET'])
@log_requests()
def browse_listings():
    """
    按条件分页浏览在售车源
    参数: make, model, city, year_from, year_to, price_from, price_to, max_mileage,
         fuel, body_type, transmission, color, page, page_size, sort_by, sort_order
    """
    logger = get_logger(__name__)
    filters = ListingFilters.from_args(request.args)

    # 页码从1开始，每页条数不超过 MAX_PAGE_SIZE
    page = max(_int_arg('page', 1), 1)
    page_size = _int_arg('page_size', current_app.config['LISTINGS_PAGE_SIZE'])
    page_size = min(max(page_size, 1), current_app.config['MAX_PAGE_SIZE'])
    sort_by = SortField.parse(request.args.get('sort_by'))
    sort_order = SortOrder.parse(request.args.get('sort_order'))

    listings, total_count = listing_engine().paginate(filters, page, page_size, sort_by, sort_order)
    total_pages = ceil(total_count / page_size) if total_count else 0

    logger.info(f"车源浏览: 第 {page} 页，共 {total_count} 条")
    return ApiResponse.success("获取车源列表成功", data={
        "listings": [listing.to_dict(include_images=True) for listing in listings],
        "filters": filters.to_dict(),
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total_count": total_count,
            "total_pages": total_pages,
            "has_previous": page > 1,
            "has_next": page < total_pages,
        },
        "sort": {"sort_by": sort_by.value, "sort_order": sort_order.value},
    }).to_json_response()

@listing_bp.route('/mine', methods=['GET'])
@jwt_required()
@log_requests()
def my_listings():
    """当前用户发布的全部车源(包括已下架)"""
    listings = listing_engine().get_user_listings(current_user.id)
    return ApiResponse.success("获取我的车源成功", data={
        "count": len(listings),
        "listings": [listing.to_dict(include_images=True) for listing in listings],
    }).to_json_response()

@listing_bp.route('/makes', methods=['GET'])
def available_makes():
    """在售车源的品牌列表"""
    return ApiResponse.success("获取品牌列表成功", data=listing_engine().available_makes()).to_json_response()

@listing_bp.route('/models', methods=['GET'])
def available_models():
    """指定品牌的车型列表"""
    models = listing_engine().available_models(request.args.get('make'))
    return ApiResponse.success("获取车型列表成功", data=models).to_json_response()

@listing_bp.route('/stats', methods=['GET'])
def listing_stats():
    """车源统计"""
    stats = listing_engine().statistics()
    return ApiResponse.success("获取统计信息成功", data={
        "total_active": stats["total_active"],
        "average_price": float(stats["average_price"]),
        "makes": _counts(stats["makes"], "make"),
        "body_types": _counts(stats["body_types"], "body_type"),
        "years": _counts(stats["years"], "year"),
    }).to_json_response()

@listing_bp.route('/recent', methods=['GET'])
def recent_listings():
    """最新发布的车源"""
    count = min(max(_int_arg('count', 10), 1), current_app.config['MAX_PAGE_SIZE'])
    listings = listing_engine().recent_listings(count)
    return ApiResponse.success("获取最新车源成功",
                               data=[listing.to_dict(include_images=True) for listing in listings]).to_json_response()

@listing_bp.route('/featured', methods=['GET'])
def featured_listings():
    """首页推荐车源(至少有一张图片)"""
    count = min(max(_int_arg('count', 6), 1), current_app.config['MAX_PAGE_SIZE'])
    listings = listing_engine().featured_listings(count)
    return ApiResponse.success("获取推荐车源成功",
                               data=[listing.to_dict(include_images=True) for listing in listings]).to_json_response()

@listing_bp.route('/<listing_id>', methods=['GET'])
def listing_details(listing_id):
    """车源详情"""
    listing = listing_engine().get_by_id(listing_id)
    if listing is None:
        raise NotFoundError("车源不存在")
    return ApiResponse.success("获取车源详情成功",
                               data=listing.to_dict(include_images=True, include_owner=True)).to_json_response()

# ---------------- 车源发布与修改 ----------------

@listing_bp.route('', methods=['POST'])
@jwt_required()
@log_requests()
def create_listing():
    """发布车源"""
    logger = get_logger(__name__)
    data = _json_body()

    listing = apply_listing_payload(Listing(owner_id=current_user.id), data)
    listing = listing_engine().create(listing)

    logger.success(f"用户 {current_user.id} 发布车源 {listing.id}")
    return ApiResponse.created("车源发布成功", data=listing.to_dict()).to_json_response()

@listing_bp.route('/<listing_id>', methods=['PUT'])
@jwt_required()
@log_requests()
def update_listing(listing_id):
    """整体更新车源(仅发布者)"""
    data = _json_body()
    engine = listing_engine()

    owned = engine.check_owner(listing_id, current_user.id)
    if not owned:
        raise error_from_outcome(owned)

    listing = engine.update(apply_listing_payload(owned.value, data))
    return ApiResponse.success("车源更新成功", data=listing.to_dict()).to_json_response()

@listing_bp.route('/<listing_id>', methods=['DELETE'])
@jwt_required()
@log_requests()
def delete_listing(listing_id):
    """下架车源(仅发布者)"""
    engine = listing_engine()

    owned = engine.check_owner(listing_id, current_user.id)
    if not owned:
        raise error_from_outcome(owned)

    engine.soft_delete(listing_id)
    return ApiResponse.success("车源已下架", data={"listing_id": listing_id}).to_json_response()

# ---------------- 车源图片 ----------------

@listing_bp.route('/<listing_id>/images', methods=['GET'])
def listing_images(listing_id):
    """车源图片，按展示顺序排列"""
    if listing_engine().get_by_id(listing_id) is None:
        raise NotFoundError("车源不存在")
    images = image_manager().get_listing_images(listing_id)
    return ApiResponse.success("获取图片成功", data=[image.to_dict() for image in images]).to_json_response()

@listing_bp.route('/<listing_id>/images', methods=['POST'])
@jwt_required()
@log_requests()
def add_listing_images(listing_id):
    """
    添加图片(仅发布者)
    单张: {"image_url": "...", "description": "..."}
    批量: {"images": [{"image_url": "...", "description": "..."}, ...]}
    """
    data = _json_body()
    manager = image_manager()

    batch = data.get('images') if 'images' in data else [data]
    if not isinstance(batch, list) or not batch or not all(isinstance(item, dict) for item in batch):
        raise InvalidArgumentError("images 必须是非空的图片列表")
    invalid = [item.get('image_url') for item in batch if not manager.validate_image_url(item.get('image_url'))]
    if invalid:
        raise InvalidArgumentError(f"图片地址无效: {invalid}")

    images = manager.add_batch(listing_id, batch, current_user.id)
    return ApiResponse.created("图片添加成功", data=[image.to_dict() for image in images]).to_json_response()

@listing_bp.route('/<listing_id>/images/order', methods=['PUT'])
@jwt_required()
@log_requests()
def reorder_listing_images(listing_id):
    """调整图片顺序(仅发布者)，请求体: {"image_ids": [...]}"""
    data = _json_body()
    image_ids = data.get('image_ids')
    if not isinstance(image_ids, list):
        raise InvalidArgumentError("image_ids 必须是列表")

    manager = image_manager()
    outcome = manager.try_reorder(listing_id, image_ids, current_user.id)
    if not outcome:
        raise error_from_outcome(outcome)

    images = manager.get_listing_images(listing_id)
    return ApiResponse.success("图片顺序已更新", data=[image.to_dict() for image in images]).to_json_response()
