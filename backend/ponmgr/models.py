"""
Database models for the PON manager
"""
import uuid
from datetime import datetime

from ponmgr import db
from ponmgr.drivers.records import OltRecord, OnuRecord, ServiceProfileRecord


def _iso(value):
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ServiceProfile(db.Model, TimestampMixin):
    __tablename__ = 'service_profiles'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255))
    download_speed = db.Column(db.Integer, nullable=False)  # Mbps
    upload_speed = db.Column(db.Integer, nullable=False)  # Mbps
    internet_vlan = db.Column(db.Integer)
    iptv_vlan = db.Column(db.Integer)
    voip_vlan = db.Column(db.Integer)
    qos_priority = db.Column(db.Integer, default=0)

    def to_record(self):
        return ServiceProfileRecord(
            name=self.name,
            download_speed=self.download_speed,
            upload_speed=self.upload_speed,
            internet_vlan=self.internet_vlan,
            iptv_vlan=self.iptv_vlan,
            voip_vlan=self.voip_vlan,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'download_speed': self.download_speed,
            'upload_speed': self.upload_speed,
            'internet_vlan': self.internet_vlan,
            'iptv_vlan': self.iptv_vlan,
            'voip_vlan': self.voip_vlan,
            'qos_priority': self.qos_priority,
        }


class Olt(db.Model, TimestampMixin):
    __tablename__ = 'olts'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(120), nullable=False)
    vendor = db.Column(db.String(20), nullable=False)  # huawei, zte
    model = db.Column(db.String(64))
    ip_address = db.Column(db.String(64), nullable=False)
    location = db.Column(db.String(255))

    # Management access
    telnet_port = db.Column(db.Integer, default=23)
    username = db.Column(db.String(64))
    password = db.Column(db.String(128))
    snmp_community = db.Column(db.String(64), default='public')
    snmp_write_community = db.Column(db.String(64), default='private')
    snmp_port = db.Column(db.Integer, default=161)

    # TR-069 bootstrap pushed to ONUs
    acs_url = db.Column(db.String(255))
    acs_username = db.Column(db.String(64))
    acs_password = db.Column(db.String(128))
    inform_interval = db.Column(db.Integer)

    auto_provision = db.Column(db.Boolean, default=False)
    default_profile_id = db.Column(db.String(36), db.ForeignKey('service_profiles.id'))

    # Telemetry
    status = db.Column(db.String(20), default='unknown')
    firmware_version = db.Column(db.String(64))
    uptime = db.Column(db.Integer)
    cpu_usage = db.Column(db.Float)
    memory_usage = db.Column(db.Float)
    temperature = db.Column(db.Float)
    active_onus = db.Column(db.Integer, default=0)
    last_polled = db.Column(db.DateTime)

    default_profile = db.relationship('ServiceProfile')
    onus = db.relationship('Onu', backref='olt', lazy='dynamic', cascade='all, delete-orphan')

    def to_record(self):
        return OltRecord(
            id=self.id,
            name=self.name,
            vendor=self.vendor,
            ip_address=self.ip_address,
            telnet_port=self.telnet_port,
            username=self.username or '',
            password=self.password or '',
            snmp_community=self.snmp_community or 'public',
            snmp_write_community=self.snmp_write_community or 'private',
            snmp_port=self.snmp_port or 161,
            acs_url=self.acs_url,
            acs_username=self.acs_username,
            acs_password=self.acs_password,
            inform_interval=self.inform_interval,
            auto_provision=bool(self.auto_provision),
            default_profile_id=self.default_profile_id,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'vendor': self.vendor,
            'model': self.model,
            'ip_address': self.ip_address,
            'location': self.location,
            'telnet_port': self.telnet_port,
            'snmp_port': self.snmp_port,
            'acs_url': self.acs_url,
            'inform_interval': self.inform_interval,
            'auto_provision': bool(self.auto_provision),
            'default_profile_id': self.default_profile_id,
            'status': self.status,
            'firmware_version': self.firmware_version,
            'uptime': self.uptime,
            'cpu_usage': self.cpu_usage,
            'memory_usage': self.memory_usage,
            'temperature': self.temperature,
            'active_onus': self.active_onus,
            'last_polled': _iso(self.last_polled),
        }


class Onu(db.Model, TimestampMixin):
    __tablename__ = 'onus'
    __table_args__ = (
        db.UniqueConstraint('olt_id', 'pon_port', 'onu_id', name='uq_onus_position'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    olt_id = db.Column(db.String(36), db.ForeignKey('olts.id'), nullable=False, index=True)
    serial_number = db.Column(db.String(32), unique=True, nullable=False, index=True)
    name = db.Column(db.String(64))
    pon_port = db.Column(db.Integer)
    onu_id = db.Column(db.Integer)
    service_profile_id = db.Column(db.String(36), db.ForeignKey('service_profiles.id'))

    status = db.Column(db.String(20), default='offline')  # online, offline, los, dyinggasp, poweroff
    rx_power = db.Column(db.Float)
    tx_power = db.Column(db.Float)
    distance = db.Column(db.Integer)
    last_seen = db.Column(db.DateTime)

    service_profile = db.relationship('ServiceProfile')

    def to_record(self):
        return OnuRecord(
            id=self.id,
            serial_number=self.serial_number,
            pon_port=self.pon_port,
            onu_id=self.onu_id,
            name=self.name,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'olt_id': self.olt_id,
            'serial_number': self.serial_number,
            'name': self.name,
            'pon_port': self.pon_port,
            'onu_id': self.onu_id,
            'service_profile_id': self.service_profile_id,
            'status': self.status,
            'rx_power': self.rx_power,
            'tx_power': self.tx_power,
            'distance': self.distance,
            'last_seen': _iso(self.last_seen),
        }


class CwmpDevice(db.Model, TimestampMixin):
    __tablename__ = 'cwmp_devices'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    device_key = db.Column(db.String(200), unique=True, nullable=False, index=True)  # OUI-ProductClass-Serial
    oui = db.Column(db.String(16))
    product_class = db.Column(db.String(64))
    serial_number = db.Column(db.String(64), index=True)
    manufacturer = db.Column(db.String(120))
    model_name = db.Column(db.String(120))
    software_version = db.Column(db.String(64))
    hardware_version = db.Column(db.String(64))
    connection_request_url = db.Column(db.String(255))
    ip_address = db.Column(db.String(64))
    is_online = db.Column(db.Boolean, default=False)
    last_inform_time = db.Column(db.DateTime)
    last_connection_time = db.Column(db.DateTime)
    last_events = db.Column(db.JSON, default=list)
    parameter_cache = db.Column(db.JSON, default=dict)
    onu_id = db.Column(db.String(36), db.ForeignKey('onus.id'))

    onu = db.relationship('Onu', backref=db.backref('cwmp_device', uselist=False))
    tasks = db.relationship('CwmpTask', backref='device', lazy='dynamic', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'device_key': self.device_key,
            'oui': self.oui,
            'product_class': self.product_class,
            'serial_number': self.serial_number,
            'manufacturer': self.manufacturer,
            'model_name': self.model_name,
            'software_version': self.software_version,
            'hardware_version': self.hardware_version,
            'connection_request_url': self.connection_request_url,
            'ip_address': self.ip_address,
            'is_online': bool(self.is_online),
            'last_inform_time': _iso(self.last_inform_time),
            'last_events': self.last_events or [],
            'onu_id': self.onu_id,
            'parameter_count': len(self.parameter_cache or {}),
        }


class CwmpTask(db.Model, TimestampMixin):
    __tablename__ = 'cwmp_tasks'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    device_id = db.Column(db.String(36), db.ForeignKey('cwmp_devices.id'), nullable=False, index=True)
    task_type = db.Column(db.String(40), nullable=False)
    parameters = db.Column(db.JSON, default=dict)
    sequence = db.Column(db.Integer, nullable=False, default=0)  # FIFO order per device
    command_key = db.Column(db.String(64), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), default='pending', nullable=False, index=True)
    result = db.Column(db.JSON)
    error = db.Column(db.Text)
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'device_id': self.device_id,
            'task_type': self.task_type,
            'parameters': self.parameters or {},
            'sequence': self.sequence,
            'command_key': self.command_key,
            'status': self.status,
            'result': self.result,
            'error': self.error,
            'created_at': _iso(self.created_at),
            'started_at': _iso(self.started_at),
            'completed_at': _iso(self.completed_at),
        }
