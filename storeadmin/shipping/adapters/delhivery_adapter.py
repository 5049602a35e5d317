"""
Delhivery implementation of the Carrier Gateway.

Thin HTTP adapter over the Delhivery REST API using ``requests``. It does
not retry; callers decide what to do with transport failures.
"""

import json
import logging
from typing import Any, Dict, List

import requests

from ..config import ShippingConfig
from ..exceptions import (
    BusinessException, CarrierBusinessException, CarrierException,
    CarrierTransportException, ConfigurationException, ValidationException
)
from ..models import WaybillSource
from .carrier_adapter import (
    AttemptResult, CarrierGatewayInterface, LabelDocument, ManifestResult,
    Serviceability, TrackingInfo, WaybillBatch, generate_demo_waybills
)
from .normalizers import (
    extract_warehouse_list, normalize_warehouse, parse_heavy_serviceability_response,
    parse_manifest_response, parse_serviceability_response, parse_tracking_response,
    parse_waybill_response
)
from .validation import validate_manifest_payload, validate_pincode

logger = logging.getLogger(__name__)


class DelhiveryCarrierGateway(CarrierGatewayInterface):
    """Carrier gateway talking to Delhivery over HTTPS."""

    CREATE_PATH = '/api/cmu/create.json'
    BULK_WAYBILL_PATH = '/waybill/api/bulk/json/'
    SINGLE_WAYBILL_PATH = '/waybill/api/fetch/json/'
    TRACK_PATH = '/api/v1/packages/json/'
    EDIT_PATH = '/api/p/edit'
    PINCODE_PATH = '/c/api/pin-codes/json/'
    HEAVY_PINCODE_PATH = '/api/dc/fetch/serviceability/pincode'
    PICKUP_PATH = '/fm/request/new/'
    LABEL_PATH = '/api/p/packing_slip'

    WAREHOUSE_LIST_PATHS = [
        '/api/backend/clientwarehouse/',
        '/api/backend/clientwarehouse/list/',
        '/api/backend/clientwarehouse/get/',
    ]
    # Ordered registration strategies: (name, method, path)
    WAREHOUSE_REGISTRATION_STRATEGIES = [
        ('create', 'POST', '/api/backend/clientwarehouse/create/'),
        ('edit', 'PUT', '/api/backend/clientwarehouse/edit/'),
        ('edit_post', 'POST', '/api/backend/clientwarehouse/edit/'),
    ]

    LABEL_SIZES = ('A4', '4R')

    def __init__(self, config: ShippingConfig = None, session: requests.Session = None):
        super().__init__(config)
        self.session = session or requests.Session()

    # -- transport -----------------------------------------------------------

    def _require_token(self):
        if not self.is_configured:
            raise ConfigurationException()

    def _headers(self, content_type: str = 'application/json') -> Dict[str, str]:
        headers = {
            'Authorization': f'Token {self.config.api_token}',
            'Accept': 'application/json',
        }
        if content_type:
            headers['Content-Type'] = content_type
        return headers

    def _send(self, method: str, path: str, params=None, data=None, json_body=None,
              content_type: str = 'application/json') -> requests.Response:
        """
        Issue one request and return the response if it is 2xx.

        Raises:
            ConfigurationException: No API token
            CarrierTransportException: Network error, timeout or non-2xx
        """
        self._require_token()
        url = f"{self.config.base_url}{path}"
        logger.debug(f"Delhivery {method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                data=data,
                json=json_body,
                headers=self._headers(content_type),
                timeout=self.config.request_timeout_seconds,
            )
        except requests.Timeout as exc:
            raise CarrierTransportException(f"Delhivery request timed out: {method} {path}") from exc
        except requests.RequestException as exc:
            raise CarrierTransportException(f"Delhivery request failed: {method} {path}: {exc}") from exc

        if not 200 <= response.status_code < 300:
            body = (response.text or '')[:500]
            logger.error(f"Delhivery {method} {path} returned {response.status_code}: {body}")
            raise CarrierTransportException(
                f"Delhivery API error {response.status_code} on {path}",
                status_code=response.status_code,
                details={'body': body}
            )
        return response

    def _request_json(self, method: str, path: str, **kwargs) -> Any:
        response = self._send(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise CarrierTransportException(
                f"Malformed JSON from Delhivery on {path}",
                status_code=response.status_code,
                details={'body': (response.text or '')[:500]}
            ) from exc

    # -- waybills ------------------------------------------------------------

    def generate_waybills(self, count: int) -> WaybillBatch:
        if count < 1:
            raise ValidationException("Waybill count must be at least 1", {'count': count})
        if count == 1:
            return self.fetch_single_waybill()

        try:
            codes: List[str] = []
            remaining = count
            while remaining > 0:
                batch_size = min(remaining, self.config.max_waybills_per_request)
                payload = self._request_json(
                    'GET', self.BULK_WAYBILL_PATH,
                    params={'token': self.config.api_token, 'count': batch_size}
                )
                batch = parse_waybill_response(payload)
                if not batch:
                    raise CarrierBusinessException(
                        "Delhivery returned no waybills", carrier_message=str(payload)[:500]
                    )
                codes.extend(batch)
                remaining -= len(batch)
                if len(batch) < batch_size:
                    logger.warning(f"Delhivery returned {len(batch)} of {batch_size} requested waybills")
                    break
        except (CarrierException, ConfigurationException) as exc:
            return self._demo_batch(count, exc)

        logger.info(f"Fetched {len(codes)} waybills from Delhivery bulk endpoint")
        return WaybillBatch(codes=codes[:count], source=WaybillSource.DELHIVERY_BULK)

    def fetch_single_waybill(self) -> WaybillBatch:
        try:
            response = self._send('GET', self.SINGLE_WAYBILL_PATH, params={'token': self.config.api_token})
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            codes = parse_waybill_response(payload)
            if not codes:
                raise CarrierBusinessException(
                    "Delhivery returned no waybill", carrier_message=str(payload)[:500]
                )
        except (CarrierException, ConfigurationException) as exc:
            return self._demo_batch(1, exc)

        return WaybillBatch(codes=codes[:1], source=WaybillSource.DELHIVERY_SINGLE)

    def _demo_batch(self, count: int, reason: BusinessException) -> WaybillBatch:
        logger.warning(
            f"Delhivery waybill generation failed ({reason.code}: {reason.message}); "
            f"falling back to {count} DEMO waybills"
        )
        return WaybillBatch(
            codes=generate_demo_waybills(count),
            source=WaybillSource.DEMO,
            fallback_reason=reason.message,
        )

    # -- shipments -----------------------------------------------------------

    def create_shipment(self, payload: Dict[str, Any]) -> ManifestResult:
        validate_manifest_payload(payload)
        body = {'format': 'json', 'data': json.dumps(payload)}
        response = self._request_json(
            'POST', self.CREATE_PATH, data=body, content_type='application/x-www-form-urlencoded'
        )
        try:
            result = parse_manifest_response(response)
        except CarrierBusinessException as exc:
            logger.error(f"Delhivery rejected manifest: {exc.carrier_message}")
            raise
        logger.info(f"Delhivery accepted manifest for waybills {', '.join(result.waybills)}")
        return result

    def track_shipment(self, waybill: str) -> TrackingInfo:
        response = self._request_json('GET', self.TRACK_PATH, params={'waybill': waybill})
        return parse_tracking_response(response, waybill)

    def _cancel(self, waybill: str) -> Dict[str, Any]:
        response = self._request_json(
            'POST', self.EDIT_PATH, json_body={'waybill': waybill, 'cancellation': 'true'}
        )
        self._raise_for_edit_error(response, waybill)
        logger.info(f"Delhivery cancellation accepted for {waybill}")
        return response

    def _edit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request_json('POST', self.EDIT_PATH, json_body=payload)
        self._raise_for_edit_error(response, payload['waybill'])
        logger.info(f"Delhivery edit accepted for {payload['waybill']}")
        return response

    @staticmethod
    def _raise_for_edit_error(response: Any, waybill: str):
        if not isinstance(response, dict):
            return
        if response.get('status') is False or response.get('error'):
            remark = str(response.get('error') or response.get('remark') or response.get('message') or '')
            raise CarrierBusinessException(
                remark or f"Delhivery rejected the request for {waybill}",
                carrier_message=remark,
                response=response,
                details={'waybill': waybill}
            )

    # -- serviceability ------------------------------------------------------

    def check_pincode_serviceability(self, pincode: str) -> Serviceability:
        pincode = validate_pincode(pincode)
        response = self._request_json('GET', self.PINCODE_PATH, params={'filter_codes': pincode})
        return parse_serviceability_response(response, pincode)

    def check_heavy_pincode_serviceability(self, pincode: str) -> Serviceability:
        pincode = validate_pincode(pincode)
        response = self._request_json(
            'GET', self.HEAVY_PINCODE_PATH, params={'product_type': 'Heavy', 'pincode': pincode}
        )
        return parse_heavy_serviceability_response(response, pincode)

    # -- warehouses ----------------------------------------------------------

    def fetch_warehouses(self) -> List[Dict[str, Any]]:
        self._require_token()
        last_error = None
        for path in self.WAREHOUSE_LIST_PATHS:
            attempt = self._attempt(path, 'GET', path)
            if not attempt.ok:
                last_error = attempt.error
                continue
            records = extract_warehouse_list(attempt.data)
            if records is None:
                last_error = CarrierBusinessException(
                    f"Unrecognised warehouse list from {path}", carrier_message=str(attempt.data)[:500]
                )
                continue
            return [normalize_warehouse(record) for record in records if isinstance(record, dict)]
        raise last_error

    def register_warehouse(self, data: Dict[str, Any]) -> AttemptResult:
        self._require_token()
        attempts = []
        for name, method, path in self.WAREHOUSE_REGISTRATION_STRATEGIES:
            attempt = self._attempt(name, method, path, json_body=data)
            attempts.append(attempt)
            if attempt.ok:
                logger.info(f"Warehouse {data.get('name')} registered via {name}")
                return attempt
            logger.warning(f"Warehouse registration via {name} failed: {attempt.error}")
        raise attempts[-1].error

    def _attempt(self, strategy: str, method: str, path: str, json_body=None) -> AttemptResult:
        try:
            data = self._request_json(method, path, json_body=json_body)
        except CarrierException as exc:
            return AttemptResult(strategy=strategy, ok=False, error=exc)
        if isinstance(data, dict) and (data.get('success') is False or data.get('error')):
            remark = str(data.get('error') or data.get('message') or data.get('rmk') or 'rejected')
            return AttemptResult(
                strategy=strategy, ok=False, data=data,
                error=CarrierBusinessException(remark, carrier_message=remark, response=data)
            )
        return AttemptResult(strategy=strategy, ok=True, data=data)

    # -- pickups, e-waybills, labels -----------------------------------------

    def create_pickup_request(self, pickup_location: str, pickup_date: str, pickup_time: str,
                              expected_package_count: int = 1) -> Dict[str, Any]:
        response = self._request_json('POST', self.PICKUP_PATH, json_body={
            'pickup_location': pickup_location,
            'pickup_date': pickup_date,
            'pickup_time': pickup_time,
            'expected_package_count': expected_package_count,
        })
        if isinstance(response, dict) and (response.get('error') or response.get('success') is False):
            remark = str(response.get('error') or response.get('message') or 'Pickup request rejected')
            raise CarrierBusinessException(remark, carrier_message=remark, response=response)
        return response

    def update_ewaybill(self, waybill: str, dcn: str, ewbn: str) -> Dict[str, Any]:
        if not dcn or not ewbn:
            raise ValidationException("Invoice number (dcn) and e-waybill number (ewbn) are required")
        response = self._request_json(
            'PUT', f'/api/rest/ewaybill/{waybill}/', json_body={'data': [{'dcn': dcn, 'ewbn': ewbn}]}
        )
        self._raise_for_edit_error(response, waybill)
        return response

    def generate_label(self, waybill: str, pdf: bool = True, size: str = 'A4') -> LabelDocument:
        if size not in self.LABEL_SIZES:
            raise ValidationException(f"Label size must be one of {', '.join(self.LABEL_SIZES)}", {'pdf_size': size})
        response = self._send('GET', self.LABEL_PATH, params={
            'wbns': waybill,
            'pdf': 'true' if pdf else 'false',
            'pdf_size': size,
        })

        if 'application/pdf' in response.headers.get('Content-Type', ''):
            return LabelDocument(waybill=waybill, content=response.content)

        try:
            data = response.json()
        except ValueError as exc:
            raise CarrierTransportException(
                f"Malformed label response for {waybill}", status_code=response.status_code
            ) from exc

        packages = data.get('packages') if isinstance(data, dict) else None
        url = ''
        if packages:
            url = packages[0].get('pdf_download_link') or ''
        return LabelDocument(waybill=waybill, url=url, data=data)
